"""
Pytest configuration and fixtures.

Every test gets a fresh SQLite database (through aiosqlite) and, for API
tests, an httpx client whose text generator is a scripted fake.
"""

import json
import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from jose import jwt

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Tokens are created and verified with separate Settings instances.
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789-abcdefghijklmnop")

from learnpath.main import app
from learnpath.agents.base.llm import get_text_generator
from learnpath.core.config import get_settings
from learnpath.db.base import close_all, get_session, init_databases
from learnpath.db.models import (
    App,
    AppContent,
    CurriculumNode,
    CurriculumProgress,
    QuestionProgress,
    User,
)


USER_UID = "user-1"
OTHER_UID = "user-2"


def issue_token(sub: str, expires_in: timedelta = timedelta(minutes=30)) -> str:
    """Sign a token the way the upstream identity provider does."""
    settings = get_settings()
    payload = {"sub": sub, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


class ScriptedGenerator:
    """TextGenerator returning canned responses, or raising a canned error."""

    provider = "scripted"
    model = "scripted-model"

    def __init__(self, responses: Optional[List[Any]] = None, error: Optional[Exception] = None):
        self.responses = list(responses or [])
        self.error = error
        self.calls: List[dict] = []

    def push(self, response: Any) -> None:
        self.responses.append(response)

    async def generate(self, system_prompt, user_prompt, *, user_uid, purpose) -> str:
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "user_uid": user_uid,
            "purpose": purpose,
        })
        if self.error is not None:
            raise self.error
        response = self.responses.pop(0)
        if not isinstance(response, str):
            response = json.dumps(response)
        return response


class Seeder:
    """Inserts catalog, progress and curriculum rows for a test."""

    async def _add(self, *rows):
        async with get_session() as session:
            async with session.begin():
                session.add_all(rows)
                await session.flush()
        return rows

    async def user(self, uid: str = USER_UID, language_variant: str = "swiss") -> User:
        (user,) = await self._add(User(uid=uid, language_variant=language_variant))
        return user

    async def app(
        self,
        app_id: str,
        name: Optional[str] = None,
        type: str = "learning",
        data_structure: str = '{"question": "string", "answer": "string"}',
        tags: Optional[str] = None,
    ) -> App:
        (app_row,) = await self._add(App(
            id=app_id,
            name=name or app_id.capitalize(),
            description=f"Practice {app_id}",
            route=f"/{app_id}",
            icon="*",
            tags=tags,
            type=type,
            data_structure=data_structure,
        ))
        return app_row

    async def content(
        self,
        app_id: str,
        data: Any,
        level: Optional[int] = None,
        skill_level: Optional[float] = None,
    ) -> int:
        raw = data if isinstance(data, str) else json.dumps(data)
        (item,) = await self._add(AppContent(
            app_id=app_id,
            data=raw,
            level=level,
            skill_level=skill_level,
        ))
        return item.id

    async def progress(
        self,
        app_id: str,
        content_id: int,
        success: int = 0,
        failure: int = 0,
        user_uid: str = USER_UID,
        last_attempt_at: Optional[str] = None,
    ) -> None:
        await self._add(QuestionProgress(
            user_uid=user_uid,
            app_content_id=content_id,
            app_id=app_id,
            success_count=success,
            failure_count=failure,
            last_attempt_at=last_attempt_at,
        ))

    async def questions(
        self,
        app_id: str,
        count: int,
        success: int = 0,
        failure: int = 1,
        user_uid: str = USER_UID,
    ) -> List[int]:
        """Add ``count`` content items to an app, each with the given history."""
        ids = []
        for index in range(count):
            content_id = await self.content(app_id, {"question": f"{app_id} {index}"})
            await self.progress(app_id, content_id, success, failure, user_uid=user_uid)
            ids.append(content_id)
        return ids

    async def curriculum_node(
        self,
        code: str,
        level: str = "handlungsaspekt",
        fachbereich: str = "deutsch",
        parent_code: Optional[str] = None,
        zyklus: Optional[int] = None,
        title: Optional[str] = None,
    ) -> int:
        (node,) = await self._add(CurriculumNode(
            code=code,
            fachbereich=fachbereich,
            level=level,
            parent_code=parent_code,
            zyklus=zyklus,
            title=title or code,
        ))
        return node.id

    async def curriculum_progress(
        self,
        node_id: int,
        mastery_level: int,
        status: str = "started",
        user_uid: str = USER_UID,
    ) -> None:
        await self._add(CurriculumProgress(
            user_uid=user_uid,
            curriculum_node_id=node_id,
            mastery_level=mastery_level,
            status=status,
        ))


@pytest_asyncio.fixture
async def database(tmp_path, monkeypatch) -> AsyncGenerator[None, None]:
    """Create a fresh SQLite database for one test."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'learnpath.db'}")
    await close_all()
    await init_databases()
    yield
    await close_all()


@pytest_asyncio.fixture
async def seed(database) -> Seeder:
    """Row factory bound to the test database."""
    return Seeder()


@pytest.fixture
def generator() -> ScriptedGenerator:
    """Scripted text generator; push responses before calling."""
    return ScriptedGenerator()


@pytest_asyncio.fixture
async def async_client(database, generator) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client using the scripted generator."""
    app.dependency_overrides[get_text_generator] = lambda: generator
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """Return headers with an auth token for USER_UID."""
    token = issue_token(USER_UID)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers() -> dict:
    """Return headers with an auth token for OTHER_UID."""
    token = issue_token(OTHER_UID)
    return {"Authorization": f"Bearer {token}"}
