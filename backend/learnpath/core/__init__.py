"""Core configuration, errors and security for the learnpath service."""

from .config import Settings, get_settings
from .errors import (
    InsufficientDataError,
    InvalidGenerationError,
    LearnpathError,
    PlanConflictError,
    ProviderError,
    TaskValidationError,
)
from .security import (
    user_uid_from_token,
    verify_access_token,
)

__all__ = [
    "Settings",
    "get_settings",
    "LearnpathError",
    "InsufficientDataError",
    "InvalidGenerationError",
    "PlanConflictError",
    "ProviderError",
    "TaskValidationError",
    "user_uid_from_token",
    "verify_access_token",
]
