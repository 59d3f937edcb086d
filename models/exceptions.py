# exceptions.py
"""
Domain errors raised by the workout player core.
"""


class InvalidPlanError(ValueError):
    """A session was started with no exercises to play."""


class InvalidDurationError(ValueError):
    """A breathing or rest duration lies outside the accepted range."""

    def __init__(self, field: str, value: float, message: str = ""):
        self.field = field
        self.value = value
        super().__init__(message or f"Invalid duration for {field}: {value}")


class PlanLockedError(RuntimeError):
    """Exercise targets were edited while that exercise is in a running session."""
