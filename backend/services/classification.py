"""Per-item health and risk classification."""

from datetime import date
from typing import Optional

from services.work_items import WorkItem, is_terminal_status, priority_rank

UNDERESTIMATED = "UNDERESTIMATED"
NORMAL = "NORMAL"
GOOD = "GOOD"

TIME_BOX_EXCEEDED = "TIME_BOX_EXCEEDED"
DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"

# Absorbs the 0.1h rounding applied to Jira seconds
HEALTH_EPSILON = 0.1


def classify_health(item: WorkItem) -> str:
    """Compare the original estimate with spent + remaining."""
    original = item.original_estimate_hours
    if not original:
        return NORMAL

    actual_total = item.logged_hours + item.remaining_estimate_hours
    if abs(original - actual_total) < HEALTH_EPSILON:
        return NORMAL
    if original < actual_total:
        return UNDERESTIMATED
    return GOOD


def risk_reasons(item: WorkItem, today: date) -> list:
    """Every risk trigger that fires for an item. Terminal items never fire."""
    if is_terminal_status(item.status):
        return []

    reasons = []
    if item.remaining_estimate_hours == 0 and item.original_estimate_hours > 0:
        reasons.append(TIME_BOX_EXCEEDED)
    if item.due_date and item.due_date <= today:
        reasons.append(DEADLINE_EXCEEDED)
    return reasons


def primary_risk_reason(reasons: list) -> Optional[str]:
    if DEADLINE_EXCEEDED in reasons:
        return DEADLINE_EXCEEDED
    return reasons[0] if reasons else None


def sprint_health(items: list) -> dict:
    counts = {"under": 0, "normal": 0, "good": 0, "total": len(items)}
    details = []

    for item in items:
        health = classify_health(item)
        if health == UNDERESTIMATED:
            counts["under"] += 1
        elif health == GOOD:
            counts["good"] += 1
        else:
            counts["normal"] += 1

        details.append({
            "key": item.key,
            "summary": item.summary,
            "assignee": item.assignee or "Unassigned",
            "status": item.status,
            "originalEstimate": item.original_estimate_hours,
            "timeSpent": item.logged_hours,
            "remainingEstimate": item.remaining_estimate_hours,
            "difference": round(
                item.original_estimate_hours - item.logged_hours - item.remaining_estimate_hours, 1
            ),
            "health": health
        })

    return {"counts": counts, "details": details}


def at_risk_items(items: list, today: date) -> dict:
    """At-risk items sorted by due date (none last), then highest priority first."""
    rows = []
    for item in items:
        reasons = risk_reasons(item, today)
        if not reasons:
            continue
        rows.append((item, {
            "key": item.key,
            "summary": item.summary,
            "assignee": item.assignee or "Unassigned",
            "priority": item.priority,
            "status": item.status,
            "dueDate": item.due_date.isoformat() if item.due_date else None,
            "originalEstimate": item.original_estimate_hours,
            "remainingEstimate": item.remaining_estimate_hours,
            "riskReason": primary_risk_reason(reasons),
            "riskReasons": reasons
        }))

    rows.sort(key=lambda pair: (
        pair[0].due_date is None,
        pair[0].due_date or date.max,
        -priority_rank(pair[0].priority)
    ))
    items_out = [row for _, row in rows]
    return {"items": items_out, "total": len(items_out)}
