"""Recording exercise results.

Each answered question bumps the learner's success or failure counter.
Answers tagged with a ``curriculum-<node id>`` category also move the
learner's mastery on that curriculum node.
"""

import logging
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import select

from ...core.errors import TaskValidationError
from ...db.base import get_session, utcnow_iso
from ...db.models import CurriculumProgress, QuestionProgress

logger = logging.getLogger(__name__)

CURRICULUM_CATEGORY_PREFIX = "curriculum-"
MASTERY_GAIN_CORRECT = 5
MASTERY_LOSS_WRONG = -2
MASTERY_MAX = 100


class ProgressUpdate(BaseModel):
    app_id: str
    app_content_id: int
    success_count: int
    failure_count: int
    curriculum_node_id: Optional[int] = None
    curriculum_mastery: Optional[int] = None


def curriculum_node_from_category(category: Optional[str]) -> Optional[int]:
    """Node id encoded in a ``curriculum-<id>`` category, else None."""
    if not category or not category.startswith(CURRICULUM_CATEGORY_PREFIX):
        return None
    raw = category[len(CURRICULUM_CATEGORY_PREFIX):].split("-", 1)[0]
    try:
        return int(raw)
    except ValueError:
        return None


def next_curriculum_mastery(current: int, is_correct: bool) -> int:
    delta = MASTERY_GAIN_CORRECT if is_correct else MASTERY_LOSS_WRONG
    return max(0, min(MASTERY_MAX, (current or 0) + delta))


async def record_question_progress(
    user_uid: str,
    app_id: str,
    app_content_id: Optional[int],
    is_correct: bool,
    category: Optional[str] = None,
) -> ProgressUpdate:
    """
    Record one answer.

    Args:
        user_uid: The learner
        app_id: App the question belongs to
        app_content_id: The question answered
        is_correct: Whether the answer was right
        category: Optional category; ``curriculum-<id>`` also updates curriculum mastery

    Returns:
        The counters after the update
    """
    if not app_id or app_content_id is None:
        raise TaskValidationError("app_id and app_content_id are required")

    now = utcnow_iso()
    node_id = curriculum_node_from_category(category)

    async with get_session() as session:
        async with session.begin():
            progress = await session.get(QuestionProgress, (user_uid, app_content_id))
            if progress is None:
                progress = QuestionProgress(
                    user_uid=user_uid,
                    app_content_id=app_content_id,
                    app_id=app_id,
                    success_count=0,
                    failure_count=0,
                )
                session.add(progress)

            if is_correct:
                progress.success_count += 1
            else:
                progress.failure_count += 1
            progress.last_attempt_at = now

            curriculum_mastery = None
            if node_id is not None:
                result = await session.execute(
                    select(CurriculumProgress).where(
                        CurriculumProgress.user_uid == user_uid,
                        CurriculumProgress.curriculum_node_id == node_id,
                    )
                )
                node_progress = result.scalar_one_or_none()
                if node_progress is None:
                    node_progress = CurriculumProgress(
                        user_uid=user_uid,
                        curriculum_node_id=node_id,
                        mastery_level=0,
                    )
                    session.add(node_progress)
                curriculum_mastery = next_curriculum_mastery(node_progress.mastery_level, is_correct)
                node_progress.mastery_level = curriculum_mastery
                node_progress.status = "completed" if curriculum_mastery >= MASTERY_MAX else "started"
                node_progress.last_activity = now

        logger.debug(
            f"Recorded {'correct' if is_correct else 'wrong'} answer "
            f"for {user_uid} on {app_id}/{app_content_id}"
        )

        return ProgressUpdate(
            app_id=progress.app_id,
            app_content_id=progress.app_content_id,
            success_count=progress.success_count,
            failure_count=progress.failure_count,
            curriculum_node_id=node_id,
            curriculum_mastery=curriculum_mastery,
        )
