"""Read-only catalog lookups.

These tools enable:
- Listing practice ("learning") apps with their target content shapes
- Suggesting random starter apps to learners without history
- Reading a learner's spelling preference
- Sampling content a learner has never attempted
- Listing one app's content ranked by the learner's priority
"""

import json
import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import and_, func, or_, select

from ...db.base import get_session
from ...db.models import App, AppContent, QuestionProgress, User
from .mastery import score_progress

logger = logging.getLogger(__name__)

APP_TYPE_LEARNING = "learning"
DEFAULT_LANGUAGE_VARIANT = "swiss"


class AppSummary(BaseModel):
    """Display and generation metadata of one app."""

    id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    route: Optional[str] = None
    icon: Optional[str] = None
    tags: List[str] = []
    featured: bool = False
    type: str = "tool"
    data_structure: Optional[str] = None


class ContentItemView(BaseModel):
    """One content item, optionally annotated with the learner's history."""

    id: int
    app_id: str
    data: Any = None
    level: Optional[int] = None
    skill_level: Optional[float] = None
    mastery: Optional[str] = None
    success_count: Optional[int] = None
    failure_count: Optional[int] = None


def parse_content_data(raw: Optional[str]) -> Any:
    """Decode a stored content payload; None when it is not valid JSON."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None


def _parse_tags(raw: Optional[str]) -> List[str]:
    try:
        tags = json.loads(raw) if raw else []
    except (TypeError, ValueError):
        logger.warning(f"Unparsable tags value: {raw!r}")
        return []
    return [str(tag) for tag in tags] if isinstance(tags, list) else []


def app_summary(app: App) -> AppSummary:
    return AppSummary(
        id=app.id,
        name=app.name,
        description=app.description,
        category=app.category,
        route=app.route,
        icon=app.icon,
        tags=_parse_tags(app.tags),
        featured=bool(app.featured),
        type=app.type or "tool",
        data_structure=app.data_structure,
    )


# =============================================================================
# App catalog
# =============================================================================

async def list_learning_apps() -> List[AppSummary]:
    """All practice apps, ordered by id."""
    async with get_session() as session:
        result = await session.execute(
            select(App).where(App.type == APP_TYPE_LEARNING).order_by(App.id)
        )
        return [app_summary(app) for app in result.scalars().all()]


async def get_apps_map() -> Dict[str, AppSummary]:
    """Every app in the catalog keyed by id."""
    async with get_session() as session:
        result = await session.execute(select(App))
        return {app.id: app_summary(app) for app in result.scalars().all()}


async def suggest_starter_apps(count: int = 5) -> List[AppSummary]:
    """A random selection of practice apps for learners without history."""
    apps = await list_learning_apps()
    if len(apps) <= count:
        random.shuffle(apps)
        return apps
    return random.sample(apps, count)


async def get_language_variant(user_uid: str) -> str:
    """The learner's spelling variant ("swiss" unless stored otherwise)."""
    async with get_session() as session:
        result = await session.execute(
            select(User.language_variant).where(User.uid == user_uid)
        )
        variant = result.scalar_one_or_none()
    return variant or DEFAULT_LANGUAGE_VARIANT


# =============================================================================
# Progress & content
# =============================================================================

async def count_progress_rows(user_uid: str) -> int:
    """Number of questions the learner has attempted."""
    async with get_session() as session:
        result = await session.execute(
            select(func.count()).select_from(QuestionProgress).where(
                QuestionProgress.user_uid == user_uid
            )
        )
        return int(result.scalar_one())


async def sample_unseen_content(user_uid: str, limit: int) -> List[AppContent]:
    """
    Randomly sample practice-app content the learner has never attempted.

    Args:
        user_uid: The learner
        limit: Maximum number of items to return

    Returns:
        Up to ``limit`` AppContent rows in random order
    """
    if limit <= 0:
        return []

    attempted = select(QuestionProgress.app_content_id).where(
        QuestionProgress.user_uid == user_uid
    )
    learning_apps = select(App.id).where(App.type == APP_TYPE_LEARNING)

    async with get_session() as session:
        id_result = await session.execute(
            select(AppContent.id).where(
                AppContent.app_id.in_(learning_apps),
                AppContent.id.not_in(attempted),
            )
        )
        unseen_ids = list(id_result.scalars().all())
        if not unseen_ids:
            return []

        chosen = random.sample(unseen_ids, min(limit, len(unseen_ids)))
        rows_result = await session.execute(
            select(AppContent).where(AppContent.id.in_(chosen))
        )
        by_id = {row.id: row for row in rows_result.scalars().all()}

    return [by_id[content_id] for content_id in chosen if content_id in by_id]


async def list_app_content(
    user_uid: Optional[str],
    app_id: str,
    skill_level: Optional[float] = None,
    level: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[ContentItemView]:
    """
    List the content of one app.

    With a known learner every item carries its history and mastery, and the
    list is ordered by priority: struggling first, mastered last.
    """
    filters = [AppContent.app_id == app_id]
    if skill_level is not None:
        filters.append(or_(AppContent.skill_level.is_(None), AppContent.skill_level <= skill_level))
    if level is not None:
        filters.append(or_(AppContent.level.is_(None), AppContent.level == level))

    async with get_session() as session:
        if user_uid is None:
            result = await session.execute(
                select(AppContent).where(*filters).order_by(AppContent.id)
            )
            return [
                ContentItemView(
                    id=row.id,
                    app_id=row.app_id,
                    data=parse_content_data(row.data),
                    level=row.level,
                    skill_level=row.skill_level,
                )
                for row in result.scalars().all()
            ]

        result = await session.execute(
            select(AppContent, QuestionProgress)
            .outerjoin(
                QuestionProgress,
                and_(
                    QuestionProgress.app_content_id == AppContent.id,
                    QuestionProgress.user_uid == user_uid,
                ),
            )
            .where(*filters)
            .order_by(AppContent.id)
        )
        rows = result.all()

    ranked = []
    for content, progress in rows:
        successes = progress.success_count if progress else 0
        failures = progress.failure_count if progress else 0
        score = score_progress(
            successes,
            failures,
            progress.last_attempt_at if progress else None,
            now=now,
        )
        item = ContentItemView(
            id=content.id,
            app_id=content.app_id,
            data=parse_content_data(content.data),
            level=content.level,
            skill_level=content.skill_level,
            mastery=score.mastery,
            success_count=successes,
            failure_count=failures,
        )
        ranked.append((item, score.priority))

    ranked.sort(key=lambda pair: pair[1], reverse=True)
    return [item for item, _ in ranked]
