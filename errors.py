"""
Failures raised by the help-request lifecycle.

Each one is scoped to the single operation that raised it; main.py maps
them to HTTP responses.
"""

from typing import Optional


class LifecycleError(Exception):
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(LifecycleError):
    """Missing or malformed input. Nothing was written."""

    status_code = 422

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(detail)
        self.field = field


class AuthorizationError(LifecycleError):
    """Caller lacks the role or ownership the action needs."""

    status_code = 403


class StateError(LifecycleError):
    """Action is illegal for the entity's current status; re-fetch and retry."""

    status_code = 409


class NotFoundError(LifecycleError):
    status_code = 404


class TransportError(LifecycleError):
    """The database could not be reached."""

    status_code = 503
