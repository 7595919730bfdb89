"""Per-gadget user configuration (board choice, team size)."""

from services.errors import InputError

# teamSize None means "one per distinct assignee" in the burndown
DEFAULT_CONFIG = {"boardId": None, "teamSize": None, "workingDaysDefault": 10}


def config_key(gadget_id) -> str:
    return f"config-{gadget_id or 'default'}"


class GadgetConfigStore:
    def __init__(self, store, defaults: dict = None):
        self.store = store
        self.defaults = dict(DEFAULT_CONFIG)
        self.defaults.update(defaults or {})

    def get(self, gadget_id) -> dict:
        config = dict(self.defaults)
        config.update(self.store.get(config_key(gadget_id)) or {})
        return config

    def save(self, gadget_id, payload: dict) -> dict:
        """Validate and store a configuration, returning what was saved."""
        if not isinstance(payload, dict):
            raise InputError("Missing request body")

        config = self.get(gadget_id)
        for name in ("teamSize", "workingDaysDefault"):
            if name in payload and payload[name] is not None:
                try:
                    value = int(payload[name])
                except (TypeError, ValueError):
                    raise InputError(f"{name} must be a whole number")
                if value < 1:
                    raise InputError(f"{name} must be at least 1")
                config[name] = value
        if "boardId" in payload:
            config["boardId"] = payload["boardId"]

        self.store.set(config_key(gadget_id), config)
        return config
