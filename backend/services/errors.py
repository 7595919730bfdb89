"""Error types surfaced by the dashboard services."""


class DashboardError(Exception):
    """Base error; ``message`` is safe to show to the user."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InputError(DashboardError):
    """Missing or invalid request input (board, sprint, team size)."""

    status_code = 400


class UpstreamError(DashboardError):
    """The issue tracker could not be reached or refused the request."""

    status_code = 502
