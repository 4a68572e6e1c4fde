"""Candidate pool construction and validation of generated plan layouts."""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ...core.errors import InvalidGenerationError
from ...db.models import AppContent
from ..tools.catalog import AppSummary
from ..tools.mastery import MASTERED_MIN_SUCCESSES, UNSEEN_PRIORITY, score_progress
from ..tools.weak_areas import ProgressRow, content_preview
from .state import (
    TAG_REVIEW,
    TAG_UNSEEN,
    TAG_WEAK,
    Candidate,
    ProposedPlan,
    ValidatedDay,
    ValidatedPlan,
)

logger = logging.getLogger(__name__)

_TAG_RANK = {TAG_WEAK: 0, TAG_UNSEEN: 1, TAG_REVIEW: 2}


def candidate_tag(success_count: int, failure_count: int) -> str:
    """``weak`` for failing or shaky items, ``review`` for the rest."""
    if failure_count > success_count:
        return TAG_WEAK
    if failure_count > 0 and success_count < MASTERED_MIN_SUCCESSES:
        return TAG_WEAK
    return TAG_REVIEW


def build_candidate_pool(
    progress_rows: Iterable[ProgressRow],
    unseen: Iterable[AppContent],
    apps: Dict[str, AppSummary],
    now: Optional[datetime] = None,
) -> List[Candidate]:
    """
    Every attempted item plus a sample of never-attempted ones.

    Args:
        progress_rows: The learner's progress rows
        unseen: Sampled content the learner has not attempted
        apps: App catalog keyed by id, for display names
        now: Reference time for priority scoring

    Returns:
        One candidate per content item; attempted items first
    """
    pool: List[Candidate] = []
    seen_ids = set()

    for row in progress_rows:
        if row.app_content_id in seen_ids:
            continue
        if row.data is None:
            logger.debug(f"Skipping progress row for missing content {row.app_content_id}")
            continue
        seen_ids.add(row.app_content_id)
        app = apps.get(row.app_id)
        score = score_progress(row.success_count, row.failure_count, row.last_attempt_at, now=now)
        pool.append(Candidate(
            app_content_id=row.app_content_id,
            app_id=row.app_id,
            app_name=app.name if app else row.app_id,
            tag=candidate_tag(row.success_count, row.failure_count),
            success_count=row.success_count,
            failure_count=row.failure_count,
            priority=score.priority,
            preview=content_preview(row.data),
        ))

    for item in unseen:
        if item.id in seen_ids:
            continue
        seen_ids.add(item.id)
        app = apps.get(item.app_id)
        pool.append(Candidate(
            app_content_id=item.id,
            app_id=item.app_id,
            app_name=app.name if app else item.app_id,
            tag=TAG_UNSEEN,
            priority=UNSEEN_PRIORITY,
            preview=content_preview(item.data),
        ))

    return pool


def order_for_prompt(pool: List[Candidate], limit: int) -> List[Candidate]:
    """Weak items by priority, then unseen, then review; at most ``limit``."""
    ordered = sorted(pool, key=lambda c: (_TAG_RANK.get(c.tag, 3), -c.priority))
    return ordered[:limit]


def _as_content_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, dict):
        value = value.get("id", value.get("app_content_id"))
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def validate_plan(
    proposed: ProposedPlan,
    pool: List[Candidate],
    max_days: int,
    raw_text: str = "",
) -> ValidatedPlan:
    """
    Resolve a proposed layout against the candidate pool.

    Ids outside the pool and repeated ids within a day are dropped, empty
    days are dropped, and at most ``max_days`` days are kept. Surviving days
    are renumbered from 1.

    Raises:
        InvalidGenerationError: if no day survives
    """
    by_id = {candidate.app_content_id: candidate for candidate in pool}
    days: List[ValidatedDay] = []
    dropped = 0

    for proposed_day in proposed.days:
        if len(days) >= max_days:
            break
        picked: List[Candidate] = []
        picked_ids = set()
        for raw_id in proposed_day.task_ids:
            content_id = _as_content_id(raw_id)
            candidate = by_id.get(content_id) if content_id is not None else None
            if candidate is None or content_id in picked_ids:
                dropped += 1
                continue
            picked_ids.add(content_id)
            picked.append(candidate)
        if not picked:
            continue
        days.append(ValidatedDay(
            day_number=len(days) + 1,
            focus=proposed_day.focus,
            candidates=picked,
        ))

    if dropped:
        logger.warning(f"Dropped {dropped} generated plan entries not in the candidate pool")

    if not days:
        logger.error(f"Generated plan has no valid days: {raw_text!r}")
        raise InvalidGenerationError(
            "AI response contained no valid plan days",
            raw_text=raw_text,
        )

    return ValidatedPlan(
        title=proposed.title or "Lernplan",
        description=proposed.description,
        days=days,
    )
