"""Key-value stores for baselines and per-gadget configuration."""

import json
import logging
import os

logger = logging.getLogger(__name__)


class MemoryStore:
    """In-process store, used by tests and when no store path is configured."""

    def __init__(self, initial: dict = None):
        self._data = dict(initial or {})

    def get(self, key: str):
        value = self._data.get(key)
        # Round-trip through JSON so callers never share mutable state
        return json.loads(json.dumps(value)) if value is not None else None

    def set(self, key: str, value) -> None:
        self._data[key] = json.loads(json.dumps(value))

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """Stores every key in a single local JSON file.

    Writes are last-write-wins; concurrent writers are not coordinated.
    """

    def __init__(self, path: str):
        self.path = path

    def _ensure_dir(self):
        directory = os.path.dirname(self.path)
        if directory and not os.path.exists(directory):
            os.makedirs(directory)

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to read store {self.path}: {e}")
            return {}

    def _save(self, data: dict) -> None:
        self._ensure_dir()
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2, sort_keys=True)

    def get(self, key: str):
        return self._load().get(key)

    def set(self, key: str, value) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)
