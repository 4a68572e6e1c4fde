"""Text helpers shared by prompts and responses."""

from typing import Any


def replace_eszett(value: Any) -> Any:
    """Recursively replace 'ß' with 'ss' throughout a JSON-like value.

    Used for Swiss German spelling. Dict keys are left untouched.
    """
    if isinstance(value, str):
        return value.replace("ß", "ss")
    if isinstance(value, list):
        return [replace_eszett(item) for item in value]
    if isinstance(value, dict):
        return {key: replace_eszett(item) for key, item in value.items()}
    return value


def truncate_text(text: str, max_length: int = 1000, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length (default 1000)
        suffix: Suffix to add when truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
