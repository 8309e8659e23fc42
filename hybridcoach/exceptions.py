"""Error taxonomy shared by the planning engine and the HTTP layer."""
from __future__ import annotations


class CoachError(Exception):
    """Base class for errors the engine surfaces to its caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CoachError):
    """Input that cannot be planned against (missing profile data, past dates, ...)."""

    status_code = 400


class PlanningError(ValidationError):
    """The periodization planner cannot lay out training days."""

    INSUFFICIENT_AVAILABILITY = "insufficient_availability"

    def __init__(self, message: str, reason: str = INSUFFICIENT_AVAILABILITY):
        super().__init__(message)
        self.reason = reason


class NotFoundError(CoachError):
    """Entity is unknown or not owned by the requesting user."""

    status_code = 404


class ConflictError(CoachError):
    """Plan state does not allow the operation; the caller may retry."""

    status_code = 409

    def __init__(self, message: str, retry_guidance: str | None = None):
        super().__init__(message)
        self.retry_guidance = retry_guidance
