"""Curriculum, app content and progress event endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from ..agents.tools.catalog import list_app_content
from ..agents.tools.curriculum import get_curriculum
from ..agents.tools.progress import record_question_progress
from ..core.errors import LearnpathError
from .auth import get_current_user_uid, get_optional_user_uid
from .responses import localized, raise_http

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Catalog"])


class QuestionProgressEvent(BaseModel):
    """One answered question."""

    model_config = ConfigDict(populate_by_name=True)

    app_id: Optional[str] = Field(None, alias="appId")
    app_content_id: Optional[int] = Field(None, alias="appContentId")
    is_correct: bool = Field(..., alias="isCorrect")
    category: Optional[str] = None


@router.get("/curriculum")
async def read_curriculum(
    fachbereich: Optional[str] = None,
    max_zyklus: Optional[int] = None,
    language_format: Optional[str] = Query(None, alias="language-format"),
    user_uid: Optional[str] = Depends(get_optional_user_uid),
):
    """Curriculum nodes with related apps and, for a known learner, mastery."""
    nodes = await get_curriculum(user_uid, fachbereich=fachbereich, max_zyklus=max_zyklus)
    return localized(nodes, language_format)


@router.get("/apps/{app_id}/content")
async def read_app_content(
    app_id: str,
    skill_level: Optional[float] = None,
    level: Optional[int] = None,
    language_format: Optional[str] = Query(None, alias="language-format"),
    user_uid: Optional[str] = Depends(get_optional_user_uid),
):
    """Content of one app; ranked by priority for a known learner."""
    items = await list_app_content(user_uid, app_id, skill_level=skill_level, level=level)
    return localized(items, language_format)


@router.post("/events/question-progress")
async def post_question_progress(
    event: QuestionProgressEvent,
    user_uid: str = Depends(get_current_user_uid),
):
    """Record the result of one answered question."""
    try:
        update = await record_question_progress(
            user_uid,
            event.app_id,
            event.app_content_id,
            event.is_correct,
            category=event.category,
        )
    except LearnpathError as e:
        raise_http(e)
    return {"success": True, **localized(update)}
