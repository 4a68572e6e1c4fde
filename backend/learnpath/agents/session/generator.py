"""Learning session generation and tracking.

A session is a one-shot batch of freshly generated practice tasks aimed at
the learner's weak areas. Each task is stored as one row of
``learning_session``; a session stays active while any task is pristine.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Iterable, List, Optional, Union

from sqlalchemy import select, update

from ...core.config import get_settings
from ...core.errors import (
    InsufficientDataError,
    InvalidGenerationError,
    TaskValidationError,
)
from ...db.base import get_session, utcnow_iso
from ...db.models import LearningSessionTask
from ..base.llm import TextGenerator
from ..base.utils import has_content, normalize_task_ids, parse_json_object
from ..tools.ai_log import call_generator, log_ai_interaction
from ..tools.catalog import (
    count_progress_rows,
    get_language_variant,
    list_learning_apps,
    suggest_starter_apps,
)
from ..tools.weak_areas import get_weak_area_report
from .prompts import build_session_prompts
from .state import (
    LearningSession,
    NotEnoughData,
    ProposedSession,
    SessionTask,
    TheoryCard,
)

logger = logging.getLogger(__name__)

PURPOSE = "learning-session"

NO_TASKS_TOPIC = "Super gemacht!"
NO_TASKS_TEXT = "Im Moment gibt es keine neuen Aufgaben für dich. Übe weiter in deinen Apps!"


# =============================================================================
# Reading
# =============================================================================

def _session_from_rows(rows: List[LearningSessionTask]) -> LearningSession:
    first = rows[0]
    return LearningSession(
        session_id=first.session_id,
        topic=first.topic or "",
        text=first.text or "",
        theory=[TheoryCard(**card) for card in (first.theory or []) if isinstance(card, dict)],
        created_at=first.created_at,
        tasks=[
            SessionTask(
                id=row.id,
                app_id=row.app_id,
                content=row.content,
                order_index=row.order_index,
                pristine=bool(row.pristine),
            )
            for row in rows
        ],
    )


async def _load_active_session(user_uid: str) -> Optional[LearningSession]:
    async with get_session() as session:
        result = await session.execute(
            select(LearningSessionTask.session_id)
            .where(
                LearningSessionTask.user_uid == user_uid,
                LearningSessionTask.pristine.is_(True),
            )
            .order_by(LearningSessionTask.created_at.desc(), LearningSessionTask.id.desc())
            .limit(1)
        )
        session_id = result.scalar_one_or_none()
        if session_id is None:
            return None

        rows_result = await session.execute(
            select(LearningSessionTask)
            .where(
                LearningSessionTask.user_uid == user_uid,
                LearningSessionTask.session_id == session_id,
            )
            .order_by(LearningSessionTask.order_index)
        )
        rows = list(rows_result.scalars().all())

    return _session_from_rows(rows)


async def get_active_session(user_uid: str) -> Union[LearningSession, NotEnoughData, None]:
    """
    The learner's current session.

    Returns:
        The most recent session that still has a pristine task; otherwise
        NotEnoughData (with starter apps) when the learner has too little
        history, or None when a new session can be generated
    """
    active = await _load_active_session(user_uid)
    if active is not None:
        return active

    settings = get_settings()
    progress_count = await count_progress_rows(user_uid)
    if progress_count < settings.SESSION_MIN_PROGRESS:
        return NotEnoughData(
            message="Not enough data",
            hint=f"Solve at least {settings.SESSION_MIN_PROGRESS} questions to unlock a personal session.",
            suggested_apps=await suggest_starter_apps(settings.SUGGESTED_APPS_COUNT),
        )
    return None


# =============================================================================
# Generation
# =============================================================================

async def generate_session(
    user_uid: str,
    generator: TextGenerator,
    now: Optional[datetime] = None,
) -> LearningSession:
    """
    Generate and store a new session for a learner.

    Args:
        user_uid: The learner
        generator: Text generator to call
        now: Reference time for priority scoring

    Returns:
        The stored session, every task pristine. When the generator produced
        no usable task, an unsaved congratulatory session without tasks.

    Raises:
        InsufficientDataError: the learner has no practice history
        ProviderError: the generator call failed
        InvalidGenerationError: the output was not a session object
    """
    report, apps, language_variant = await asyncio.gather(
        get_weak_area_report(user_uid, now=now),
        list_learning_apps(),
        get_language_variant(user_uid),
    )

    if report.progress_count == 0:
        raise InsufficientDataError(
            "No new results to process",
            hint="Practice in a few apps first.",
        )

    system_prompt, user_prompt = build_session_prompts(report, apps, language_variant)
    logger.info(
        f"Generating session for {user_uid}: {report.progress_count} progress rows, "
        f"{len(report.weak_items)} weak items, {len(apps)} apps"
    )

    text = await call_generator(
        generator, user_uid, system_prompt, user_prompt, purpose=PURPOSE
    )

    data = parse_json_object(text, purpose=PURPOSE)
    if not isinstance(data.get("tasks"), list):
        logger.error(f"[{PURPOSE}] response missing tasks structure: {text!r}")
        raise InvalidGenerationError("AI response missing tasks structure", raw_text=text)
    proposed = ProposedSession.model_validate(data)

    known_apps = {app.id for app in apps}
    tasks = []
    for task in proposed.tasks:
        if not has_content(task.content):
            continue
        if task.app_id not in known_apps:
            logger.warning(f"Dropping generated task for unknown app {task.app_id!r}")
            continue
        tasks.append(task)

    theory = [
        TheoryCard(title=card.title, content=card.content)
        for card in proposed.theory
        if card.title or card.content
    ]

    if not tasks:
        logger.info(f"Generator returned no usable tasks for {user_uid}")
        return LearningSession(topic=NO_TASKS_TOPIC, text=NO_TASKS_TEXT)

    session_id = str(uuid.uuid4())
    created_at = utcnow_iso()
    theory_data = [card.model_dump() for card in theory]
    rows = [
        LearningSessionTask(
            user_uid=user_uid,
            session_id=session_id,
            app_id=task.app_id,
            content=task.content,
            order_index=index,
            pristine=True,
            topic=proposed.topic,
            text=proposed.text,
            theory=theory_data,
            created_at=created_at,
        )
        for index, task in enumerate(tasks, start=1)
    ]

    async with get_session() as session:
        async with session.begin():
            session.add_all(rows)
            await session.flush()

    logger.info(f"Stored session {session_id} with {len(rows)} tasks for {user_uid}")

    await log_ai_interaction(
        user_uid,
        session_id,
        user_prompt,
        system_prompt,
        text,
        provider=generator.provider,
        model=generator.model,
    )

    return LearningSession(
        session_id=session_id,
        topic=proposed.topic,
        text=proposed.text,
        theory=theory,
        created_at=created_at,
        tasks=[
            SessionTask(
                id=row.id,
                app_id=row.app_id,
                content=row.content,
                order_index=row.order_index,
                pristine=True,
            )
            for row in rows
        ],
    )


# =============================================================================
# Tracking
# =============================================================================

async def mark_tasks_done(user_uid: str, task_ids: Iterable) -> List[int]:
    """
    Mark session tasks as no longer pristine.

    Idempotent. All ids must belong to the learner; otherwise nothing is
    written.

    Returns:
        The ids that were marked
    """
    ids = normalize_task_ids(task_ids)

    async with get_session() as session:
        async with session.begin():
            result = await session.execute(
                select(LearningSessionTask.id).where(
                    LearningSessionTask.id.in_(ids),
                    LearningSessionTask.user_uid == user_uid,
                )
            )
            owned = set(result.scalars().all())
            missing = [task_id for task_id in ids if task_id not in owned]
            if missing:
                raise TaskValidationError(f"Unknown session tasks: {missing}")

            await session.execute(
                update(LearningSessionTask)
                .where(
                    LearningSessionTask.id.in_(ids),
                    LearningSessionTask.user_uid == user_uid,
                )
                .values(pristine=False)
            )

    logger.debug(f"Marked session tasks {ids} done for {user_uid}")
    return ids
