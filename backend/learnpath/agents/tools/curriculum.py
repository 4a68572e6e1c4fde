"""Curriculum tree aggregation.

Overlays a learner's curriculum progress and the related practice apps onto
the static pedagogical hierarchy. Read-only.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import or_, select

from ...db.base import get_session
from ...db.models import CurriculumNode, CurriculumProgress

logger = logging.getLogger(__name__)

STATUS_NOT_STARTED = "not_started"

# App ids per Handlungsaspekt code.
CURRICULUM_APP_MAP: Dict[str, List[str]] = {
    "D.5.E": ["dasdass", "fehler"],
    "D.5.D": ["wortarten", "kasus", "verben"],
    "D.5.C": ["wortfamilie", "wortstaemme"],
    "D.5.B": ["aehnlichewoerter", "synant", "oberbegriffe"],
    "D.5.A": ["wortfamilie"],
    "D.4.F": ["fehler", "satzzeichen"],
    "D.4.D": ["fehler"],
    "D.2.B": ["aehnlichewoerter"],
    "D.2.C": ["aehnlichewoerter"],
    "D.2.A": ["redewendungen"],
    "MA.1.A": ["kopfrechnen", "textaufgaben"],
    "MA.1.C": ["textaufgaben"],
    "MA.2.A": ["symmetrien"],
    "MA.3.A": ["umrechnen", "zeitrechnen"],
}


class CurriculumNodeView(BaseModel):
    """A curriculum node with apps and the learner's progress attached."""

    id: int
    code: str
    fachbereich: str
    level: str
    parent_code: Optional[str] = None
    zyklus: Optional[int] = None
    title: str
    description: Optional[str] = None
    apps: List[str] = []
    mastery: int = 0
    status: str = STATUS_NOT_STARTED


def _is_code_prefix(prefix: str, code: str) -> bool:
    """True when ``code`` is ``prefix`` or lies below it in the hierarchy."""
    return code == prefix or code.startswith(prefix + ".")


def apps_for_code(code: str, app_map: Optional[Dict[str, List[str]]] = None) -> List[str]:
    """
    Apps related to a curriculum code.

    A table entry applies when its key is the code itself, one of its
    ancestors, or one of its descendants. Order follows the table, without
    duplicates.
    """
    app_map = CURRICULUM_APP_MAP if app_map is None else app_map
    apps: List[str] = []
    for prefix, app_ids in app_map.items():
        if _is_code_prefix(prefix, code) or _is_code_prefix(code, prefix):
            for app_id in app_ids:
                if app_id not in apps:
                    apps.append(app_id)
    return apps


async def _fetch_nodes(
    fachbereich: Optional[str],
    max_zyklus: Optional[int],
) -> List[CurriculumNode]:
    stmt = select(CurriculumNode)
    if fachbereich:
        stmt = stmt.where(CurriculumNode.fachbereich == fachbereich)
    if max_zyklus is not None:
        stmt = stmt.where(
            or_(CurriculumNode.zyklus.is_(None), CurriculumNode.zyklus <= max_zyklus)
        )
    async with get_session() as session:
        result = await session.execute(stmt.order_by(CurriculumNode.id))
        return list(result.scalars().all())


async def _fetch_progress(user_uid: Optional[str]) -> Dict[int, CurriculumProgress]:
    if not user_uid:
        return {}
    async with get_session() as session:
        result = await session.execute(
            select(CurriculumProgress).where(CurriculumProgress.user_uid == user_uid)
        )
        return {row.curriculum_node_id: row for row in result.scalars().all()}


async def get_curriculum(
    user_uid: Optional[str] = None,
    fachbereich: Optional[str] = None,
    max_zyklus: Optional[int] = None,
) -> List[CurriculumNodeView]:
    """
    Curriculum nodes with related apps and the learner's mastery.

    Args:
        user_uid: The learner, or None for an anonymous view
        fachbereich: Only nodes of this subject
        max_zyklus: Only nodes up to this cycle (nodes without a cycle always pass)

    Returns:
        Flat node list in catalog order; the client builds the tree from parent_code
    """
    nodes, progress = await asyncio.gather(
        _fetch_nodes(fachbereich, max_zyklus),
        _fetch_progress(user_uid),
    )

    views = []
    for node in nodes:
        entry = progress.get(node.id)
        views.append(CurriculumNodeView(
            id=node.id,
            code=node.code,
            fachbereich=node.fachbereich,
            level=node.level,
            parent_code=node.parent_code,
            zyklus=node.zyklus,
            title=node.title,
            description=node.description,
            apps=apps_for_code(node.code),
            mastery=(entry.mastery_level if entry else None) or 0,
            status=(entry.status if entry else None) or STATUS_NOT_STARTED,
        ))
    return views
