"""Learning session and learning plan endpoints."""

import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..agents.base.llm import TextGenerator, get_text_generator
from ..agents.plan import (
    abandon_plan,
    complete_plan_tasks,
    generate_plan,
    get_active_plan,
)
from ..agents.session import (
    NotEnoughData,
    generate_session,
    get_active_session,
    mark_tasks_done,
)
from ..core.errors import LearnpathError
from .auth import get_current_user_uid
from .responses import localized, raise_http

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Learning"])


# ==============================================================================
# Pydantic Models
# ==============================================================================

class SessionTasksDone(BaseModel):
    """Mark one or more session tasks done."""
    taskId: Any = None
    taskIds: Optional[List[Any]] = None


class PlanCreate(BaseModel):
    """Generate a plan for the given number of days."""
    days: Optional[int] = None


class PlanTasksDone(BaseModel):
    """Mark plan tasks completed."""
    taskIds: List[Any] = []


def _not_enough_data(result: NotEnoughData, language_format: Optional[str]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=localized(result, language_format),
    )


# ==============================================================================
# Learning Session
# ==============================================================================

@router.get("/learning-session")
async def read_learning_session(
    language_format: Optional[str] = Query(None, alias="language-format"),
    user_uid: str = Depends(get_current_user_uid),
):
    """
    Get the current learning session.

    Returns the active session, 404 with starter apps when the learner has
    too little history, or null when a new session can be generated.
    """
    result = await get_active_session(user_uid)
    if isinstance(result, NotEnoughData):
        return _not_enough_data(result, language_format)
    if result is None:
        return None
    return localized(result, language_format)


@router.put("/learning-session")
async def update_learning_session(
    request: SessionTasksDone,
    user_uid: str = Depends(get_current_user_uid),
):
    """Mark session tasks as done."""
    task_ids = request.taskIds
    if task_ids is None:
        task_ids = [request.taskId] if request.taskId is not None else []
    try:
        marked = await mark_tasks_done(user_uid, task_ids)
    except LearnpathError as e:
        raise_http(e)
    return {"success": True, "taskIds": marked}


@router.post("/learning-session")
async def create_learning_session(
    user_uid: str = Depends(get_current_user_uid),
    generator: TextGenerator = Depends(get_text_generator),
):
    """Generate a new learning session from the learner's weak areas."""
    try:
        session = await generate_session(user_uid, generator)
    except LearnpathError as e:
        raise_http(e)
    return localized(session)


# ==============================================================================
# Learning Plan
# ==============================================================================

@router.get("/learning-plan")
async def read_learning_plan(
    language_format: Optional[str] = Query(None, alias="language-format"),
    user_uid: str = Depends(get_current_user_uid),
):
    """Get the active plan grouped by day."""
    result = await get_active_plan(user_uid)
    if isinstance(result, NotEnoughData):
        return _not_enough_data(result, language_format)
    if result is None:
        return None
    return localized(result, language_format)


@router.post("/learning-plan")
async def create_learning_plan(
    request: Optional[PlanCreate] = None,
    user_uid: str = Depends(get_current_user_uid),
    generator: TextGenerator = Depends(get_text_generator),
):
    """Generate a new plan, abandoning the active one."""
    days = request.days if request else None
    try:
        plan = await generate_plan(user_uid, generator, days=days)
    except LearnpathError as e:
        raise_http(e)
    return localized(plan)


@router.put("/learning-plan/tasks")
async def update_learning_plan_tasks(
    request: PlanTasksDone,
    user_uid: str = Depends(get_current_user_uid),
):
    """Mark plan tasks completed; the plan completes with its last task."""
    try:
        completion = await complete_plan_tasks(user_uid, request.taskIds)
    except LearnpathError as e:
        raise_http(e)
    return {"success": True, **localized(completion)}


@router.delete("/learning-plan")
async def delete_learning_plan(user_uid: str = Depends(get_current_user_uid)):
    """Abandon the active plan, if any."""
    plan_id = await abandon_plan(user_uid)
    return {"success": True, "plan_id": plan_id}
