"""
Test curriculum aggregation and progress recording.
"""

import pytest
from sqlalchemy import select

from learnpath.agents.tools.curriculum import apps_for_code, get_curriculum
from learnpath.agents.tools.progress import (
    curriculum_node_from_category,
    next_curriculum_mastery,
    record_question_progress,
)
from learnpath.core.errors import TaskValidationError
from learnpath.db.base import get_session
from learnpath.db.models import CurriculumProgress, QuestionProgress


USER = "user-1"


class TestAppsForCode:
    """Code-prefix lookup of related apps."""

    def test_exact_match(self):
        assert apps_for_code("MA.2.A") == ["symmetrien"]

    def test_descendant_inherits_ancestor_apps(self):
        assert apps_for_code("D.5.E.1.a") == ["dasdass", "fehler"]

    def test_ancestor_collects_descendant_apps_without_duplicates(self):
        apps = apps_for_code("D.5")
        assert apps[:2] == ["dasdass", "fehler"]
        assert apps.count("wortfamilie") == 1
        assert "synant" in apps
        assert "redewendungen" not in apps

    def test_segment_boundary_respected(self):
        assert apps_for_code("MA.1.AB") == []
        assert apps_for_code("D.55") == []

    def test_unrelated_code(self):
        assert apps_for_code("NMG.1") == []


class TestCurriculumMastery:

    def test_category_parsing(self):
        assert curriculum_node_from_category("curriculum-42") == 42
        assert curriculum_node_from_category("curriculum-abc") is None
        assert curriculum_node_from_category("kasus") is None
        assert curriculum_node_from_category(None) is None

    def test_mastery_is_clamped(self):
        assert next_curriculum_mastery(98, True) == 100
        assert next_curriculum_mastery(1, False) == 0
        assert next_curriculum_mastery(50, True) == 55
        assert next_curriculum_mastery(50, False) == 48


@pytest.mark.asyncio
class TestGetCurriculum:
    """Curriculum tree with mastery overlay."""

    async def _tree(self, seed):
        root = await seed.curriculum_node("D", level="fachbereich")
        aspect = await seed.curriculum_node("D.5.E", parent_code="D.5", zyklus=2)
        later = await seed.curriculum_node("D.5.E.1", level="kompetenz", parent_code="D.5.E", zyklus=3)
        math = await seed.curriculum_node("MA.1.A", fachbereich="mathematik", zyklus=1)
        return root, aspect, later, math

    async def test_anonymous_view(self, seed):
        await self._tree(seed)

        nodes = await get_curriculum(None)

        assert [node.code for node in nodes] == ["D", "D.5.E", "D.5.E.1", "MA.1.A"]
        assert all(node.mastery == 0 and node.status == "not_started" for node in nodes)
        by_code = {node.code: node for node in nodes}
        assert by_code["D.5.E"].apps == ["dasdass", "fehler"]
        assert by_code["MA.1.A"].apps == ["kopfrechnen", "textaufgaben"]

    async def test_filters(self, seed):
        await self._tree(seed)

        deutsch = await get_curriculum(None, fachbereich="deutsch", max_zyklus=2)

        assert [node.code for node in deutsch] == ["D", "D.5.E"]

    async def test_user_progress_overlay(self, seed):
        _, aspect, _, _ = await self._tree(seed)
        await seed.curriculum_progress(aspect, 40, status="started")
        await seed.curriculum_progress(aspect, 90, status="started", user_uid="user-2")

        nodes = {node.code: node for node in await get_curriculum(USER)}

        assert nodes["D.5.E"].mastery == 40
        assert nodes["D.5.E"].status == "started"
        assert nodes["D"].status == "not_started"


@pytest.mark.asyncio
class TestRecordQuestionProgress:
    """Progress counters and curriculum mastery updates."""

    async def test_counters_accumulate(self, seed):
        await seed.app("kasus")
        content_id = await seed.content("kasus", {"q": 1})

        await record_question_progress(USER, "kasus", content_id, True)
        await record_question_progress(USER, "kasus", content_id, False)
        update = await record_question_progress(USER, "kasus", content_id, True)

        assert (update.success_count, update.failure_count) == (2, 1)
        async with get_session() as session:
            row = await session.get(QuestionProgress, (USER, content_id))
        assert row.last_attempt_at is not None

    async def test_curriculum_category_moves_mastery(self, seed):
        node_id = await seed.curriculum_node("D.5.E")
        content_id = await seed.content("dasdass", {"q": 1})

        for _ in range(3):
            await record_question_progress(USER, "dasdass", content_id, True, category=f"curriculum-{node_id}")
        update = await record_question_progress(
            USER, "dasdass", content_id, False, category=f"curriculum-{node_id}"
        )

        assert update.curriculum_mastery == 13
        async with get_session() as session:
            result = await session.execute(select(CurriculumProgress))
            progress = result.scalar_one()
        assert progress.mastery_level == 13
        assert progress.status == "started"

    async def test_full_mastery_completes_node(self, seed):
        node_id = await seed.curriculum_node("D.5.E")
        await seed.curriculum_progress(node_id, 97)

        update = await record_question_progress(USER, "dasdass", 1, True, category=f"curriculum-{node_id}")

        assert update.curriculum_mastery == 100
        async with get_session() as session:
            progress = await session.get(CurriculumProgress, (USER, node_id))
        assert progress.status == "completed"

    async def test_missing_ids_rejected(self, seed):
        with pytest.raises(TaskValidationError):
            await record_question_progress(USER, "", 1, True)
        with pytest.raises(TaskValidationError):
            await record_question_progress(USER, "kasus", None, True)
