"""Mastery classification and priority scoring.

Pure functions over a learner's success/failure history on one question:
- ``classify_mastery`` maps counts to a coarse label
- ``recency_factor`` weights how recently the question was attempted
- ``score_progress`` combines both into the priority used for ranking

Nothing here performs I/O; scores are recomputed on every read.
"""

import math
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel


MASTERY_NEW = "new"
MASTERY_STRUGGLING = "struggling"
MASTERY_IMPROVING = "improving"
MASTERY_MASTERED = "mastered"

# Unseen questions sit mid-table: neither starved nor dominant.
UNSEEN_PRIORITY = 0.5

RECENCY_DECAY_PER_DAY = 0.1
RECENCY_FLOOR = 0.3

MASTERED_MIN_SUCCESSES = 3


class ProgressScore(BaseModel):
    """Mastery label and ranking priority for one question."""

    mastery: str
    priority: float


def classify_mastery(success_count: int, failure_count: int) -> str:
    """Coarse mastery label for a success/failure history."""
    if success_count + failure_count == 0:
        return MASTERY_NEW
    if success_count >= MASTERED_MIN_SUCCESSES and failure_count == 0:
        return MASTERY_MASTERED
    if failure_count > success_count:
        return MASTERY_STRUGGLING
    return MASTERY_IMPROVING


def base_priority(success_count: int, failure_count: int) -> float:
    """Laplace-smoothed failure rate, or the flat unseen priority."""
    total = success_count + failure_count
    if total == 0:
        return UNSEEN_PRIORITY
    return min(1.0, (failure_count + 1) / (total + 1))


def recency_factor(days_since_attempt: float) -> float:
    """
    Multiplier in (0.3, 1.0] favouring recently attempted questions.

    Equals 1.0 at zero days and decays towards 0.3 without reaching it.
    """
    days = max(0.0, days_since_attempt)
    boost = math.exp(-RECENCY_DECAY_PER_DAY * days)
    return RECENCY_FLOOR + (1 - RECENCY_FLOOR) * boost


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Read a stored timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            text = str(value).strip().replace(" ", "T", 1)
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def score_progress(
    success_count: int,
    failure_count: int,
    last_attempt_at: Union[str, datetime, None] = None,
    now: Optional[datetime] = None,
) -> ProgressScore:
    """
    Score one question's history.

    Args:
        success_count: Correct answers so far
        failure_count: Wrong answers so far
        last_attempt_at: Time of the last attempt, if any
        now: Reference time (defaults to the current UTC time)

    Returns:
        ProgressScore with the mastery label and a priority in (0, 1]
    """
    success_count = success_count or 0
    failure_count = failure_count or 0

    mastery = classify_mastery(success_count, failure_count)
    priority = base_priority(success_count, failure_count)

    if success_count + failure_count > 0:
        attempted_at = parse_timestamp(last_attempt_at)
        if attempted_at is not None:
            reference = now or datetime.now(timezone.utc)
            if reference.tzinfo is None:
                reference = reference.replace(tzinfo=timezone.utc)
            days = (reference - attempted_at).total_seconds() / 86400
            priority *= recency_factor(days)

    return ProgressScore(mastery=mastery, priority=priority)
