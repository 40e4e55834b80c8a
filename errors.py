"""
Error taxonomy shared by fetchers, pipelines and the HTTP surface.

Every error carries the HTTP status it maps to; the server turns it into the
`{"success": false, "error": ...}` envelope.
"""

from typing import Iterable, Optional


class DashboardError(Exception):
    status_code = 500


class ConfigurationError(DashboardError):
    """A required secret or setting is missing."""


class UpstreamError(DashboardError):
    """Non-success response from an external service."""

    def __init__(self, service: str, status: Optional[int], detail: str = ""):
        self.service = service
        self.status = status
        self.detail = detail
        message = f"{service} error ({status})" if status else f"{service} error"
        if detail:
            message += f": {detail[:200]}"
        super().__init__(message)


class AIResponseParseError(DashboardError):
    """The text-generation service did not return valid JSON."""

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"JSON parse error: {raw[:200]}")


class ActionTimeoutError(DashboardError):
    def __init__(self, action: str, seconds: float):
        self.action = action
        super().__init__(f'Action "{action}" timed out after {seconds:g}s')


class InvalidParameterError(DashboardError):
    status_code = 400


class UnknownActionError(DashboardError):
    status_code = 400

    def __init__(self, action, valid_actions: Iterable[str]):
        self.action = action
        self.valid_actions = list(valid_actions)
        super().__init__(
            f'Unknown action: "{action}". Available: {", ".join(self.valid_actions)}'
        )
