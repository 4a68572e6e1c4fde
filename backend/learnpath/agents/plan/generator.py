"""Learning plan generation and lifecycle.

A plan schedules existing content over several days. Lifecycle:
``active`` -> ``completed`` (all tasks done) or ``abandoned`` (replaced or
given up). Terminal plans never change again.

At most one plan per learner is active. ``learning_plans.active_owner``
holds the learner id while a plan is active and is unique, so a second
concurrent activation fails at the storage layer.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from ...core.config import get_settings
from ...core.errors import InsufficientDataError, PlanConflictError, TaskValidationError
from ...db.base import get_session, utcnow_iso
from ...db.models import (
    PLAN_STATUS_ABANDONED,
    PLAN_STATUS_ACTIVE,
    PLAN_STATUS_COMPLETED,
    AppContent,
    LearningPlan,
    LearningPlanTask,
)
from ..base.llm import TextGenerator
from ..base.utils import normalize_task_ids, parse_json_object
from ..session.state import NotEnoughData
from ..tools.ai_log import call_generator, log_ai_interaction
from ..tools.catalog import (
    count_progress_rows,
    get_apps_map,
    get_language_variant,
    parse_content_data,
    sample_unseen_content,
)
from ..tools.weak_areas import fetch_progress_rows
from .candidates import build_candidate_pool, order_for_prompt, validate_plan
from .prompts import build_plan_prompts
from .state import (
    LearningPlanView,
    PlanCompletion,
    PlanDayView,
    PlanTaskView,
    ProposedPlan,
    ValidatedPlan,
)

logger = logging.getLogger(__name__)

PURPOSE = "learning-plan"


# =============================================================================
# Reading
# =============================================================================

async def _fetch_plan_tasks(plan_id: str) -> List[tuple]:
    async with get_session() as session:
        result = await session.execute(
            select(LearningPlanTask, AppContent.data)
            .outerjoin(AppContent, AppContent.id == LearningPlanTask.app_content_id)
            .where(LearningPlanTask.plan_id == plan_id)
            .order_by(LearningPlanTask.day_number, LearningPlanTask.order_index)
        )
        return list(result.all())


async def build_plan_view(plan: LearningPlan) -> LearningPlanView:
    """Assemble a plan with its tasks enriched by content and app metadata."""
    task_rows, apps = await asyncio.gather(
        _fetch_plan_tasks(plan.plan_id),
        get_apps_map(),
    )

    focus_by_day: Dict[int, str] = {}
    for entry in plan.plan_data or []:
        if isinstance(entry, dict) and entry.get("day") is not None:
            focus_by_day[int(entry["day"])] = str(entry.get("focus") or "")

    days: Dict[int, PlanDayView] = {}
    for task, data in task_rows:
        app = apps.get(task.app_id)
        day = days.setdefault(
            task.day_number,
            PlanDayView(day=task.day_number, focus=focus_by_day.get(task.day_number, "")),
        )
        day.tasks.append(PlanTaskView(
            id=task.id,
            day_number=task.day_number,
            order_index=task.order_index,
            app_id=task.app_id,
            app_content_id=task.app_content_id,
            completed=bool(task.completed),
            completed_at=task.completed_at,
            content=parse_content_data(data),
            app_name=app.name if app else None,
            app_icon=app.icon if app else None,
            app_route=app.route if app else None,
        ))

    return LearningPlanView(
        plan_id=plan.plan_id,
        title=plan.title,
        description=plan.description,
        status=plan.status,
        total_days=plan.total_days,
        created_at=plan.created_at,
        completed_at=plan.completed_at,
        days=[days[number] for number in sorted(days)],
    )


async def _find_active_plan(user_uid: str) -> Optional[LearningPlan]:
    async with get_session() as session:
        result = await session.execute(
            select(LearningPlan)
            .where(
                LearningPlan.user_uid == user_uid,
                LearningPlan.status == PLAN_STATUS_ACTIVE,
            )
            .order_by(LearningPlan.created_at.desc(), LearningPlan.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()


async def get_active_plan(user_uid: str) -> Union[LearningPlanView, NotEnoughData, None]:
    """
    The learner's active plan.

    Returns:
        The active plan grouped by day; otherwise NotEnoughData when the
        learner has too little history, or None when a plan can be generated
    """
    plan = await _find_active_plan(user_uid)
    if plan is not None:
        return await build_plan_view(plan)

    settings = get_settings()
    progress_count = await count_progress_rows(user_uid)
    if progress_count < settings.PLAN_MIN_PROGRESS:
        return NotEnoughData(
            message="Not enough data",
            hint=f"Solve at least {settings.PLAN_MIN_PROGRESS} questions to get a learning plan.",
        )
    return None


# =============================================================================
# Generation
# =============================================================================

async def _persist_plan(user_uid: str, plan_id: str, validated: ValidatedPlan) -> None:
    """Abandon the previous active plan and store the new one atomically."""
    created_at = utcnow_iso()
    async with get_session() as session:
        try:
            async with session.begin():
                abandoned = await session.execute(
                    update(LearningPlan)
                    .where(
                        LearningPlan.user_uid == user_uid,
                        LearningPlan.status == PLAN_STATUS_ACTIVE,
                    )
                    .values(status=PLAN_STATUS_ABANDONED, active_owner=None)
                )
                if abandoned.rowcount:
                    logger.info(f"Abandoned {abandoned.rowcount} active plan(s) of {user_uid}")

                session.add(LearningPlan(
                    user_uid=user_uid,
                    plan_id=plan_id,
                    title=validated.title,
                    description=validated.description,
                    status=PLAN_STATUS_ACTIVE,
                    total_days=len(validated.days),
                    plan_data=[
                        {"day": day.day_number, "focus": day.focus}
                        for day in validated.days
                    ],
                    created_at=created_at,
                    active_owner=user_uid,
                ))
                await session.flush()

                session.add_all([
                    LearningPlanTask(
                        plan_id=plan_id,
                        day_number=day.day_number,
                        order_index=index,
                        app_id=candidate.app_id,
                        app_content_id=candidate.app_content_id,
                        completed=False,
                    )
                    for day in validated.days
                    for index, candidate in enumerate(day.candidates, start=1)
                ])
        except IntegrityError as e:
            logger.warning(f"Concurrent plan creation for {user_uid}: {e}")
            raise PlanConflictError(
                "Another learning plan was created at the same time",
                hint="Please try again.",
            ) from e


async def generate_plan(
    user_uid: str,
    generator: TextGenerator,
    days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> LearningPlanView:
    """
    Generate and store a new multi-day plan, replacing the active one.

    Args:
        user_uid: The learner
        generator: Text generator to call
        days: Number of days to plan (1 to PLAN_MAX_DAYS, default PLAN_DEFAULT_DAYS)
        now: Reference time for priority scoring

    Returns:
        The stored plan as returned by ``get_active_plan``

    Raises:
        TaskValidationError: days out of range
        InsufficientDataError: fewer candidates than PLAN_MIN_CANDIDATES
        ProviderError: the generator call failed
        InvalidGenerationError: no valid day in the output
        PlanConflictError: another plan became active concurrently
    """
    settings = get_settings()
    days = settings.PLAN_DEFAULT_DAYS if days is None else days
    if not 1 <= days <= settings.PLAN_MAX_DAYS:
        raise TaskValidationError(f"days must be between 1 and {settings.PLAN_MAX_DAYS}")

    progress_rows, unseen, apps, language_variant = await asyncio.gather(
        fetch_progress_rows(user_uid),
        sample_unseen_content(user_uid, settings.PLAN_UNSEEN_SAMPLE),
        get_apps_map(),
        get_language_variant(user_uid),
    )

    pool = build_candidate_pool(progress_rows, unseen, apps, now=now)
    if len(pool) < settings.PLAN_MIN_CANDIDATES:
        raise InsufficientDataError(
            "Not enough content to build a learning plan",
            hint="Practice in a few apps first.",
        )

    prompt_candidates = order_for_prompt(pool, settings.PLAN_PROMPT_CANDIDATES)
    system_prompt, user_prompt = build_plan_prompts(prompt_candidates, days, language_variant)
    logger.info(
        f"Generating {days}-day plan for {user_uid}: {len(pool)} candidates, "
        f"{len(prompt_candidates)} in prompt"
    )

    text = await call_generator(
        generator, user_uid, system_prompt, user_prompt, purpose=PURPOSE
    )

    proposed = ProposedPlan.model_validate(parse_json_object(text, purpose=PURPOSE))
    validated = validate_plan(proposed, pool, max_days=days, raw_text=text)

    plan_id = str(uuid.uuid4())
    await _persist_plan(user_uid, plan_id, validated)
    logger.info(
        f"Stored plan {plan_id} for {user_uid}: {len(validated.days)} days, "
        f"{sum(len(day.candidates) for day in validated.days)} tasks"
    )

    await log_ai_interaction(
        user_uid,
        plan_id,
        user_prompt,
        system_prompt,
        text,
        provider=generator.provider,
        model=generator.model,
    )

    async with get_session() as session:
        result = await session.execute(
            select(LearningPlan).where(LearningPlan.plan_id == plan_id)
        )
        plan = result.scalar_one()
    return await build_plan_view(plan)


# =============================================================================
# Tracking
# =============================================================================

async def complete_plan_tasks(user_uid: str, task_ids: Iterable) -> PlanCompletion:
    """
    Mark tasks of the learner's active plan completed.

    Already completed tasks keep their timestamp. Ids of tasks under a
    completed or abandoned plan are accepted but left untouched. When the
    active plan has no open task left it is completed in the same
    transaction.

    Raises:
        TaskValidationError: empty list, or an id not in any of the learner's plans
    """
    ids = normalize_task_ids(task_ids)
    now = utcnow_iso()

    async with get_session() as session:
        async with session.begin():
            result = await session.execute(
                select(LearningPlanTask, LearningPlan.status)
                .join(LearningPlan, LearningPlan.plan_id == LearningPlanTask.plan_id)
                .where(
                    LearningPlanTask.id.in_(ids),
                    LearningPlan.user_uid == user_uid,
                )
            )
            rows = result.all()
            found = {task.id for task, _ in rows}
            missing = [task_id for task_id in ids if task_id not in found]
            if missing:
                raise TaskValidationError(f"Unknown plan tasks: {missing}")

            active_tasks = [task for task, status in rows if status == PLAN_STATUS_ACTIVE]
            if not active_tasks:
                logger.debug(f"No active plan task among {ids} for {user_uid}")
                return PlanCompletion()

            for task in active_tasks:
                if not task.completed:
                    task.completed = True
                    task.completed_at = now
            await session.flush()

            plan_id = active_tasks[0].plan_id
            open_result = await session.execute(
                select(func.count())
                .select_from(LearningPlanTask)
                .where(
                    LearningPlanTask.plan_id == plan_id,
                    LearningPlanTask.completed.is_(False),
                )
            )
            plan_status = PLAN_STATUS_ACTIVE
            if open_result.scalar_one() == 0:
                await session.execute(
                    update(LearningPlan)
                    .where(
                        LearningPlan.plan_id == plan_id,
                        LearningPlan.status == PLAN_STATUS_ACTIVE,
                    )
                    .values(
                        status=PLAN_STATUS_COMPLETED,
                        completed_at=now,
                        active_owner=None,
                    )
                )
                plan_status = PLAN_STATUS_COMPLETED
                logger.info(f"Plan {plan_id} of {user_uid} completed")

    return PlanCompletion(
        plan_id=plan_id,
        plan_status=plan_status,
        completed_task_ids=[task.id for task in active_tasks],
    )


async def abandon_plan(user_uid: str) -> Optional[str]:
    """
    Abandon the learner's active plan.

    Returns:
        The abandoned plan id, or None if there was no active plan
    """
    async with get_session() as session:
        async with session.begin():
            result = await session.execute(
                select(LearningPlan.plan_id).where(
                    LearningPlan.user_uid == user_uid,
                    LearningPlan.status == PLAN_STATUS_ACTIVE,
                )
            )
            plan_ids = list(result.scalars().all())
            if not plan_ids:
                return None

            await session.execute(
                update(LearningPlan)
                .where(
                    LearningPlan.plan_id.in_(plan_ids),
                    LearningPlan.status == PLAN_STATUS_ACTIVE,
                )
                .values(status=PLAN_STATUS_ABANDONED, active_owner=None)
            )

    logger.info(f"Abandoned plan {plan_ids[0]} of {user_uid}")
    return plan_ids[0]
