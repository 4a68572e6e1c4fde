"""
Test learning session generation and tracking.
"""

import pytest
from sqlalchemy import func, select

from learnpath.agents.session import (
    LearningSession,
    NotEnoughData,
    generate_session,
    get_active_session,
    mark_tasks_done,
)
from learnpath.core.errors import (
    InsufficientDataError,
    InvalidGenerationError,
    ProviderError,
    TaskValidationError,
)
from learnpath.db.base import get_session
from learnpath.db.models import AiLog, LearningSessionTask


USER = "user-1"


def _session_payload(*tasks, theory=None):
    return {
        "topic": "Kasus üben",
        "text": "Heute geht es um den Dativ.",
        "theory": theory if theory is not None else [{"title": "Dativ", "content": "Wem?"}],
        "tasks": list(tasks),
    }


async def _count(model) -> int:
    async with get_session() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


async def _seed_history(seed, count=3):
    await seed.user(USER)
    await seed.app("kasus", name="Kasus")
    await seed.app("verben", name="Verben")
    return await seed.questions("kasus", count, success=0, failure=2)


@pytest.mark.asyncio
class TestGenerateSession:
    """Session generation against a scripted generator."""

    async def test_zero_progress_is_insufficient_data(self, seed, generator):
        await seed.app("kasus")
        with pytest.raises(InsufficientDataError):
            await generate_session(USER, generator)
        assert generator.calls == []

    async def test_generated_session_is_persisted(self, seed, generator):
        await _seed_history(seed)
        content = {"sentence": "Ich gebe ___ Hund einen Knochen.", "answer": "dem"}
        generator.push(_session_payload(
            {"app_id": "kasus", "content": content},
            {"app_id": "verben", "content": {"verb": "gehen"}},
        ))

        session = await generate_session(USER, generator)

        assert isinstance(session, LearningSession)
        assert session.session_id
        assert session.status == "active"
        assert [task.order_index for task in session.tasks] == [1, 2]
        assert all(task.pristine for task in session.tasks)
        assert session.tasks[0].content == content
        assert session.theory[0].title == "Dativ"
        assert await _count(LearningSessionTask) == 2

        stored = await get_active_session(USER)
        assert stored.session_id == session.session_id
        assert stored.tasks[0].content == content
        assert stored.topic == "Kasus üben"

    async def test_prompt_contains_weak_items_and_apps(self, seed, generator):
        await _seed_history(seed)
        generator.push(_session_payload({"app_id": "kasus", "content": {"q": 1}}))

        await generate_session(USER, generator)

        call = generator.calls[0]
        assert call["purpose"] == "learning-session"
        assert "ID: kasus" in call["system_prompt"]
        assert "Swiss Standard German" in call["system_prompt"]
        assert "kasus 0" in call["user_prompt"]

    async def test_standard_spelling_variant(self, seed, generator):
        await seed.user(USER, language_variant="standard")
        await seed.app("kasus")
        await seed.questions("kasus", 3)
        generator.push(_session_payload({"app_id": "kasus", "content": {"q": 1}}))

        await generate_session(USER, generator)

        assert "standard German orthography" in generator.calls[0]["system_prompt"]

    async def test_fenced_output_is_accepted(self, seed, generator):
        await _seed_history(seed)
        generator.push(
            '```json\n{"topic": "t", "text": "x", "theory": [], '
            '"tasks": [{"app_id": "kasus", "content": {"q": 1}}]}\n```'
        )

        session = await generate_session(USER, generator)

        assert len(session.tasks) == 1

    async def test_empty_and_unknown_tasks_are_dropped(self, seed, generator):
        await _seed_history(seed)
        generator.push(_session_payload(
            {"app_id": "kasus", "content": {}},
            {"app_id": "kasus", "content": "   "},
            {"app_id": "nope", "content": {"q": 1}},
            {"app_id": "verben", "content": {"verb": "laufen"}},
        ))

        session = await generate_session(USER, generator)

        assert [task.app_id for task in session.tasks] == ["verben"]
        assert session.tasks[0].order_index == 1

    async def test_no_usable_tasks_returns_unsaved_session(self, seed, generator):
        await _seed_history(seed)
        generator.push(_session_payload({"app_id": "kasus", "content": None}))

        session = await generate_session(USER, generator)

        assert session.session_id is None
        assert session.tasks == []
        assert session.status == "finished"
        assert await _count(LearningSessionTask) == 0

    async def test_invalid_json_persists_nothing(self, seed, generator):
        await _seed_history(seed)
        generator.push("Sorry, I cannot help with that.")

        with pytest.raises(InvalidGenerationError):
            await generate_session(USER, generator)

        assert await _count(LearningSessionTask) == 0

    async def test_missing_tasks_list_is_invalid(self, seed, generator):
        await _seed_history(seed)
        generator.push({"topic": "t", "text": "x"})

        with pytest.raises(InvalidGenerationError):
            await generate_session(USER, generator)

    async def test_provider_failure_is_logged_and_nothing_persisted(self, seed, generator):
        await _seed_history(seed)
        generator.error = RuntimeError("Connection error.")

        with pytest.raises(ProviderError) as exc_info:
            await generate_session(USER, generator)

        assert exc_info.value.status_code == 503
        assert await _count(LearningSessionTask) == 0
        async with get_session() as session:
            result = await session.execute(select(AiLog))
            logs = result.scalars().all()
        assert len(logs) == 1
        assert logs[0].session_id.startswith("FAILED_")
        assert logs[0].response.startswith("ERROR:")

    async def test_successful_generation_is_logged(self, seed, generator):
        await _seed_history(seed)
        generator.push(_session_payload({"app_id": "kasus", "content": {"q": 1}}))

        session = await generate_session(USER, generator)

        async with get_session() as db:
            result = await db.execute(select(AiLog))
            logs = result.scalars().all()
        assert [log.session_id for log in logs] == [session.session_id]
        assert logs[0].provider == "scripted"


@pytest.mark.asyncio
class TestActiveSession:
    """Reading and advancing the active session."""

    async def test_not_enough_data_suggests_apps(self, seed):
        for app_id in ("a1", "a2", "a3", "a4", "a5", "a6"):
            await seed.app(app_id)
        await seed.app("tool", type="tool")
        await seed.questions("a1", 2)

        result = await get_active_session(USER)

        assert isinstance(result, NotEnoughData)
        assert len(result.suggested_apps) == 5
        assert all(app.type == "learning" for app in result.suggested_apps)

    async def test_ready_returns_none(self, seed):
        await _seed_history(seed, count=3)
        assert await get_active_session(USER) is None

    async def test_session_finishes_when_all_tasks_done(self, seed, generator):
        await _seed_history(seed)
        generator.push(_session_payload(
            {"app_id": "kasus", "content": {"q": 1}},
            {"app_id": "kasus", "content": {"q": 2}},
        ))
        session = await generate_session(USER, generator)
        first, second = [task.id for task in session.tasks]

        await mark_tasks_done(USER, [first])
        still_active = await get_active_session(USER)
        assert still_active.session_id == session.session_id
        assert still_active.status == "active"
        assert [task.pristine for task in still_active.tasks] == [False, True]

        await mark_tasks_done(USER, [second])
        await mark_tasks_done(USER, [second])
        assert await get_active_session(USER) is None

    async def test_foreign_task_ids_rejected(self, seed, generator):
        await _seed_history(seed)
        generator.push(_session_payload({"app_id": "kasus", "content": {"q": 1}}))
        session = await generate_session(USER, generator)
        task_id = session.tasks[0].id

        with pytest.raises(TaskValidationError):
            await mark_tasks_done("user-2", [task_id])
        with pytest.raises(TaskValidationError):
            await mark_tasks_done(USER, [task_id, task_id + 999])
        with pytest.raises(TaskValidationError):
            await mark_tasks_done(USER, [])

        active = await get_active_session(USER)
        assert active.tasks[0].pristine is True
