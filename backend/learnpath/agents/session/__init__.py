"""Personalized practice sessions generated from weak areas."""

from .generator import generate_session, get_active_session, mark_tasks_done
from .state import LearningSession, NotEnoughData, SessionTask, TheoryCard

__all__ = [
    "generate_session",
    "get_active_session",
    "mark_tasks_done",
    "LearningSession",
    "NotEnoughData",
    "SessionTask",
    "TheoryCard",
]
