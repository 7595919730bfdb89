"""Priority and release reports over the sprint's current items."""

from services.work_items import PRIORITY_RANK, is_terminal_status, priority_rank, status_order

TOP_PRIORITY_LIMIT = 5


def high_priority_items(items: list, expand: bool = False) -> dict:
    """Items ordered by status group, then highest priority first."""
    all_items = [
        {
            "key": i.key,
            "summary": i.summary,
            "assignee": i.assignee or "Unassigned",
            "priority": i.priority,
            "status": i.status,
            "dueDate": i.due_date.isoformat() if i.due_date else None,
            "originalEstimate": i.original_estimate_hours,
            "remainingEstimate": i.remaining_estimate_hours,
            "timeSpent": i.logged_hours
        }
        for i in items
    ]
    all_items.sort(key=lambda row: (status_order(row["status"]), -priority_rank(row["priority"])))

    result = {
        "items": all_items if expand else all_items[:TOP_PRIORITY_LIMIT],
        "total": len(all_items),
        "isExpanded": bool(expand)
    }
    for name in PRIORITY_RANK:
        result[f"{name.lower()}Count"] = sum(1 for row in all_items if row["priority"] == name)
    return result


def release_progress(items: list) -> dict:
    """Group items by fix version with done/total progress."""
    releases = {}

    for item in items:
        is_done = is_terminal_status(item.status)
        estimate = item.original_estimate_hours

        for version in item.fix_versions:
            release = releases.get(version["id"])
            if release is None:
                release = {
                    "id": version["id"],
                    "name": version["name"],
                    "description": version.get("description", ""),
                    "releaseDate": version.get("releaseDate"),
                    "released": version.get("released", False),
                    "totalIssues": 0,
                    "doneIssues": 0,
                    "totalEstimate": 0.0,
                    "doneEstimate": 0.0,
                    "issues": []
                }
                releases[version["id"]] = release

            release["totalIssues"] += 1
            release["totalEstimate"] += estimate
            if is_done:
                release["doneIssues"] += 1
                release["doneEstimate"] += estimate
            release["issues"].append({
                "key": item.key,
                "summary": item.summary,
                "status": item.status,
                "priority": item.priority,
                "assignee": item.assignee or "Unassigned",
                "isDone": is_done,
                "estimate": estimate
            })

    result = []
    for release in releases.values():
        release["issues"].sort(key=lambda row: status_order(row["status"]))
        total = release["totalIssues"]
        release["progress"] = round(release["doneIssues"] / total * 100) if total else 0
        release["totalEstimate"] = round(release["totalEstimate"], 1)
        release["doneEstimate"] = round(release["doneEstimate"], 1)
        result.append(release)

    # Unreleased first, then by release date (undated last)
    result.sort(key=lambda r: (r["released"], r["releaseDate"] or "9999-12-31"))

    return {
        "releases": result,
        "totalReleases": len(result),
        "unversionedCount": sum(1 for i in items if not i.fix_versions)
    }
