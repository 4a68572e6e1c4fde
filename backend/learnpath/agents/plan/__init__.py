"""Multi-day learning plans built from existing content."""

from .generator import (
    abandon_plan,
    complete_plan_tasks,
    generate_plan,
    get_active_plan,
)
from .state import LearningPlanView, PlanCompletion

__all__ = [
    "abandon_plan",
    "complete_plan_tasks",
    "generate_plan",
    "get_active_plan",
    "LearningPlanView",
    "PlanCompletion",
]
