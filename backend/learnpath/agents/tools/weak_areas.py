"""Weak-area selection over a learner's question history.

Builds the advisory context handed to the generator: a per-app rollup
phrased as a performance summary, and a bounded list of the weakest
questions with a short rendering of their content.
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel
from sqlalchemy import select

from ...core.config import get_settings
from ...core.text import truncate_text
from ...db.base import get_session
from ...db.models import AppContent, QuestionProgress
from .catalog import AppSummary, get_apps_map, parse_content_data
from .mastery import MASTERED_MIN_SUCCESSES, score_progress

logger = logging.getLogger(__name__)

PREVIEW_MAX_LENGTH = 160


class ProgressRow(BaseModel):
    """A progress row joined with its raw content payload."""

    app_id: str
    app_content_id: int
    success_count: int = 0
    failure_count: int = 0
    last_attempt_at: Optional[str] = None
    data: Optional[str] = None


class WeakItem(BaseModel):
    app_id: str
    app_name: str
    app_content_id: int
    success_count: int
    failure_count: int
    mastery: str
    priority: float
    preview: str


class AppRollup(BaseModel):
    app_id: str
    app_name: str
    attempted: int = 0
    weak: int = 0
    mastered: int = 0


class WeakAreaReport(BaseModel):
    """Weak areas and per-app performance of one learner."""

    progress_count: int
    rollup: List[AppRollup] = []
    weak_items: List[WeakItem] = []

    def summary_text(self) -> str:
        if not self.rollup:
            return "No practice history in the current app catalog."
        return "\n".join(
            f"- {app.app_name}: {app.attempted} questions practiced, "
            f"{app.weak} with more failures than successes, {app.mastered} mastered"
            for app in self.rollup
        )

    def weak_items_text(self) -> str:
        if not self.weak_items:
            return "No weak questions identified."
        return "\n".join(
            f"- [{item.app_name}] correct {item.success_count}x, wrong {item.failure_count}x "
            f"({item.mastery}): {item.preview}"
            for item in self.weak_items
        )


def is_weak(success_count: int, failure_count: int) -> bool:
    """Any failure, or too few successes to call it settled."""
    return failure_count > 0 or success_count < MASTERED_MIN_SUCCESSES


def content_preview(raw: Optional[str], max_length: int = PREVIEW_MAX_LENGTH) -> str:
    """Short single-line rendering of a content payload; "" if unparsable."""
    data = parse_content_data(raw)
    if data is None:
        return ""
    if isinstance(data, str):
        text = data
    else:
        text = json.dumps(data, ensure_ascii=False, separators=(", ", ": "))
    return truncate_text(" ".join(text.split()), max_length)


async def fetch_progress_rows(user_uid: str) -> List[ProgressRow]:
    """All progress rows of a learner, most failures first."""
    async with get_session() as session:
        result = await session.execute(
            select(QuestionProgress, AppContent.data)
            .outerjoin(AppContent, AppContent.id == QuestionProgress.app_content_id)
            .where(QuestionProgress.user_uid == user_uid)
            .order_by(
                QuestionProgress.failure_count.desc(),
                QuestionProgress.success_count.asc(),
                QuestionProgress.app_content_id.asc(),
            )
        )
        return [
            ProgressRow(
                app_id=progress.app_id,
                app_content_id=progress.app_content_id,
                success_count=progress.success_count or 0,
                failure_count=progress.failure_count or 0,
                last_attempt_at=progress.last_attempt_at,
                data=data,
            )
            for progress, data in result.all()
        ]


def build_weak_area_report(
    rows: Iterable[ProgressRow],
    apps: Dict[str, AppSummary],
    now: Optional[datetime] = None,
    preview_limit: int = 15,
) -> WeakAreaReport:
    """
    Roll up progress per app and pick the weakest questions.

    Rows whose app is missing from the catalog are skipped. Weak rows are
    ranked by priority; equal priorities keep the incoming order.
    """
    rows = list(rows)
    rollup: Dict[str, AppRollup] = {}
    weak: List[WeakItem] = []

    for row in rows:
        app = apps.get(row.app_id)
        if app is None:
            logger.debug(f"Skipping progress on unknown app {row.app_id!r}")
            continue

        s, f = row.success_count, row.failure_count
        entry = rollup.setdefault(app.id, AppRollup(app_id=app.id, app_name=app.name))
        entry.attempted += 1
        if f > s:
            entry.weak += 1
        if s >= MASTERED_MIN_SUCCESSES and f == 0:
            entry.mastered += 1

        if is_weak(s, f):
            score = score_progress(s, f, row.last_attempt_at, now=now)
            weak.append(WeakItem(
                app_id=app.id,
                app_name=app.name,
                app_content_id=row.app_content_id,
                success_count=s,
                failure_count=f,
                mastery=score.mastery,
                priority=score.priority,
                preview=content_preview(row.data),
            ))

    weak.sort(key=lambda item: item.priority, reverse=True)

    return WeakAreaReport(
        progress_count=len(rows),
        rollup=list(rollup.values()),
        weak_items=weak[:preview_limit],
    )


async def get_weak_area_report(
    user_uid: str,
    now: Optional[datetime] = None,
) -> WeakAreaReport:
    """Fetch a learner's history and catalog, then build the report."""
    settings = get_settings()
    rows, apps = await asyncio.gather(fetch_progress_rows(user_uid), get_apps_map())
    return build_weak_area_report(
        rows,
        apps,
        now=now,
        preview_limit=settings.WEAK_PREVIEW_LIMIT,
    )
