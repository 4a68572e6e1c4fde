"""Domain errors raised by the personalization pipeline.

Routers translate these into HTTP responses; nothing in the core retries
automatically, every error is terminal for the current request.
"""

from typing import Optional


class LearnpathError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str, *, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class InsufficientDataError(LearnpathError):
    """Not enough practice history to personalize."""

    status_code = 422


class ProviderError(LearnpathError):
    """The external text generator failed or timed out."""

    status_code = 502

    def __init__(self, message: str, *, unavailable: bool = False):
        super().__init__(message)
        # Quota exhaustion or an unreachable endpoint: the provider is down, not wrong.
        if unavailable:
            self.status_code = 503


class InvalidGenerationError(LearnpathError):
    """Generator output could not be parsed or had nothing usable in it."""

    status_code = 502

    def __init__(self, message: str, *, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class TaskValidationError(LearnpathError):
    """Caller input was rejected: empty or foreign task ids, days out of range."""

    status_code = 400


class PlanConflictError(LearnpathError):
    """Another plan became active concurrently; the caller may retry."""

    status_code = 409
