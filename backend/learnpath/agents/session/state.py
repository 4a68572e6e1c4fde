"""Types for learning sessions.

``Proposed*`` models hold untrusted generator output. They coerce loosely
typed fields and are never written to storage; the generator turns them
into ``LearningSession`` after filtering.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, computed_field, field_validator

from ..tools.catalog import AppSummary


SESSION_STATUS_ACTIVE = "active"
SESSION_STATUS_FINISHED = "finished"


class ProposedTheoryCard(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    content: str = ""

    @field_validator("title", "content", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ProposedTask(BaseModel):
    model_config = ConfigDict(extra="ignore")

    app_id: Optional[str] = None
    content: Any = None

    @field_validator("app_id", mode="before")
    @classmethod
    def _coerce_app_id(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class ProposedSession(BaseModel):
    """Session as the generator returned it."""

    model_config = ConfigDict(extra="ignore")

    topic: str = ""
    text: str = ""
    theory: List[ProposedTheoryCard] = []
    tasks: List[ProposedTask] = []

    @field_validator("topic", "text", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("theory", "tasks", mode="before")
    @classmethod
    def _only_objects(cls, value: Any) -> List[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]


class TheoryCard(BaseModel):
    title: str = ""
    content: str = ""


class SessionTask(BaseModel):
    id: int
    app_id: str
    content: Any = None
    order_index: int
    pristine: bool = True


class LearningSession(BaseModel):
    """A generated session and its tasks, ordered by ``order_index``."""

    session_id: Optional[str] = None
    topic: str = ""
    text: str = ""
    theory: List[TheoryCard] = []
    created_at: Optional[str] = None
    tasks: List[SessionTask] = []

    @computed_field
    @property
    def status(self) -> str:
        if any(task.pristine for task in self.tasks):
            return SESSION_STATUS_ACTIVE
        return SESSION_STATUS_FINISHED


class NotEnoughData(BaseModel):
    """Returned instead of a session or plan when history is too thin."""

    message: str
    hint: Optional[str] = None
    suggested_apps: List[AppSummary] = []
