"""Types for learning plans.

``Proposed*`` models hold the generator's layout as returned. Only
``ValidatedPlan`` (every task id resolved against the candidate pool) is
ever persisted.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, computed_field, field_validator


TAG_WEAK = "weak"
TAG_REVIEW = "review"
TAG_UNSEEN = "unseen"


class Candidate(BaseModel):
    """A content item eligible for scheduling."""

    app_content_id: int
    app_id: str
    app_name: str
    tag: str
    success_count: int = 0
    failure_count: int = 0
    priority: float
    preview: str = ""


# =============================================================================
# Generator output
# =============================================================================

class ProposedDay(BaseModel):
    model_config = ConfigDict(extra="ignore")

    day: Any = None
    focus: str = ""
    task_ids: List[Any] = []

    @field_validator("focus", mode="before")
    @classmethod
    def _coerce_focus(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("task_ids", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> List[Any]:
        return value if isinstance(value, list) else []


class ProposedPlan(BaseModel):
    """Plan layout as the generator returned it."""

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    description: str = ""
    days: List[ProposedDay] = []

    @field_validator("title", "description", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("days", mode="before")
    @classmethod
    def _only_objects(cls, value: Any) -> List[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]


class ValidatedDay(BaseModel):
    day_number: int
    focus: str
    candidates: List[Candidate]


class ValidatedPlan(BaseModel):
    title: str
    description: str
    days: List[ValidatedDay]


# =============================================================================
# Read model
# =============================================================================

class PlanTaskView(BaseModel):
    id: int
    day_number: int
    order_index: int
    app_id: str
    app_content_id: int
    completed: bool = False
    completed_at: Optional[str] = None
    content: Any = None
    app_name: Optional[str] = None
    app_icon: Optional[str] = None
    app_route: Optional[str] = None


class PlanDayView(BaseModel):
    day: int
    focus: str = ""
    tasks: List[PlanTaskView] = []


class LearningPlanView(BaseModel):
    """A stored plan with its tasks grouped by day."""

    plan_id: str
    title: str
    description: Optional[str] = None
    status: str
    total_days: int
    created_at: Optional[str] = None
    completed_at: Optional[str] = None
    days: List[PlanDayView] = []

    @computed_field
    @property
    def total_tasks(self) -> int:
        return sum(len(day.tasks) for day in self.days)

    @computed_field
    @property
    def completed_tasks(self) -> int:
        return sum(1 for day in self.days for task in day.tasks if task.completed)


class PlanCompletion(BaseModel):
    """Outcome of marking plan tasks completed."""

    plan_id: Optional[str] = None
    plan_status: Optional[str] = None
    completed_task_ids: List[int] = []
