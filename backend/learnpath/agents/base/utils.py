"""Shared helpers for generator output and caller input."""

import json
import logging
import re
from typing import Any, Iterable, List

from ...core.errors import InvalidGenerationError, TaskValidationError

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json|JSON)?\s*\n?")


def strip_code_fences(text: str) -> str:
    """Remove markdown code-fence markers around a JSON payload."""
    return _CODE_FENCE.sub("", text or "").strip()


def parse_json_object(text: str, *, purpose: str) -> dict:
    """
    Parse generator output into a JSON object.

    Fences are stripped first. If the model wrapped the object in prose, the
    outermost ``{...}`` span is tried as a second attempt.

    Raises:
        InvalidGenerationError: if no JSON object can be recovered
    """
    cleaned = strip_code_fences(text)
    candidates = [cleaned]
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start != -1 and end > start and (start, end) != (0, len(cleaned) - 1):
        candidates.append(cleaned[start:end + 1])

    for candidate in candidates:
        try:
            parsed: Any = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.error(f"[{purpose}] generator returned invalid JSON: {text!r}")
    raise InvalidGenerationError(
        "Failed to parse AI response",
        raw_text=text,
    )


def has_content(value: Any) -> bool:
    """False for None, empty/blank strings and empty containers."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (dict, list)):
        return len(value) > 0
    return True


def normalize_task_ids(task_ids: Iterable[Any]) -> List[int]:
    """
    Coerce caller-supplied task ids to a de-duplicated list of ints.

    Raises:
        TaskValidationError: if the list is empty or an id is not numeric
    """
    ids = []
    for task_id in task_ids or []:
        try:
            ids.append(int(task_id))
        except (TypeError, ValueError):
            raise TaskValidationError(f"Invalid task id: {task_id!r}") from None
    if not ids:
        raise TaskValidationError("No task ids given")
    return list(dict.fromkeys(ids))
