"""Database models for the personalization pipeline.

This module defines SQLAlchemy ORM models for:
- Users and their spelling preference
- The app catalog and its content items
- Per-question progress
- Learning sessions (one row per generated task)
- Learning plans and their day-bucketed tasks
- The curriculum tree and per-user curriculum progress
- AI interaction logs

Timestamps are stored as ISO-8601 strings.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)

from .base import Base, utcnow_iso


PLAN_STATUS_ACTIVE = "active"
PLAN_STATUS_COMPLETED = "completed"
PLAN_STATUS_ABANDONED = "abandoned"


class User(Base):
    """A learner known to the platform."""
    __tablename__ = "users"

    uid = Column(String(128), primary_key=True)
    email = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=True)
    learn_level = Column(Integer, nullable=True)
    language_variant = Column(String(20), nullable=False, default="swiss")
    created_at = Column(String(50), default=utcnow_iso)


class App(Base):
    """A quiz-style exercise."""
    __tablename__ = "apps"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    route = Column(String(255), nullable=True)
    icon = Column(String(32), nullable=True)
    tags = Column(Text, nullable=True)  # JSON list, stored as text
    featured = Column(Boolean, default=False, nullable=False)
    type = Column(String(20), default="tool", nullable=False, index=True)
    data_structure = Column(Text, nullable=True)  # target content shape
    created_at = Column(String(50), default=utcnow_iso)


class AppContent(Base):
    """One question/content item of an app; the payload is opaque JSON text."""
    __tablename__ = "app_content"

    id = Column(Integer, primary_key=True, autoincrement=True)
    app_id = Column(String(64), nullable=False, index=True)
    data = Column(Text, nullable=False)
    level = Column(Integer, nullable=True)
    skill_level = Column(Float, nullable=True)
    created_at = Column(String(50), default=utcnow_iso)


class QuestionProgress(Base):
    """Success/failure history of one learner on one content item."""
    __tablename__ = "user_question_progress"

    user_uid = Column(String(128), primary_key=True)
    app_content_id = Column(Integer, primary_key=True)
    app_id = Column(String(64), nullable=False)
    success_count = Column(Integer, default=0, nullable=False)
    failure_count = Column(Integer, default=0, nullable=False)
    last_attempt_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_progress_user_app", "user_uid", "app_id"),
    )


class LearningSessionTask(Base):
    """One generated task of a learning session.

    Session-level fields (topic, text, theory) are repeated on every row so a
    session can be read back from this single table.
    """
    __tablename__ = "learning_session"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_uid = Column(String(128), nullable=False, index=True)
    session_id = Column(String(64), nullable=False, index=True)
    app_id = Column(String(64), nullable=False)
    content = Column(JSON, nullable=True)
    order_index = Column(Integer, nullable=False)
    pristine = Column(Boolean, default=True, nullable=False)
    topic = Column(Text, nullable=True)
    text = Column(Text, nullable=True)
    theory = Column(JSON, nullable=True)
    created_at = Column(String(50), default=utcnow_iso, index=True)

    __table_args__ = (
        Index("idx_session_user_pristine", "user_uid", "pristine"),
    )


class LearningPlan(Base):
    """A multi-day schedule of existing content."""
    __tablename__ = "learning_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_uid = Column(String(128), nullable=False, index=True)
    plan_id = Column(String(64), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default=PLAN_STATUS_ACTIVE, nullable=False)
    total_days = Column(Integer, default=1, nullable=False)
    plan_data = Column(JSON, nullable=True)  # [{"day": 1, "focus": "..."}]
    created_at = Column(String(50), default=utcnow_iso, index=True)
    completed_at = Column(String(50), nullable=True)
    # Holds user_uid while active, NULL otherwise; unique => one active plan per user.
    active_owner = Column(String(128), nullable=True)

    __table_args__ = (
        UniqueConstraint("active_owner", name="unique_active_plan"),
        Index("idx_plan_user_status", "user_uid", "status"),
    )


class LearningPlanTask(Base):
    """One scheduled content item on one day of a plan."""
    __tablename__ = "learning_plan_tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    plan_id = Column(String(64), ForeignKey("learning_plans.plan_id", ondelete="CASCADE"), nullable=False, index=True)
    day_number = Column(Integer, nullable=False)
    order_index = Column(Integer, nullable=False)
    app_id = Column(String(64), nullable=False)
    app_content_id = Column(Integer, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(String(50), nullable=True)


class CurriculumNode(Base):
    """One entry of the static pedagogical hierarchy."""
    __tablename__ = "curriculum_nodes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(64), nullable=False, unique=True)
    fachbereich = Column(String(50), nullable=False, index=True)
    level = Column(String(30), nullable=False)
    parent_code = Column(String(64), nullable=True)
    zyklus = Column(Integer, nullable=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)


class CurriculumProgress(Base):
    """Per-user mastery projected onto a curriculum node."""
    __tablename__ = "user_curriculum_progress"

    user_uid = Column(String(128), primary_key=True)
    curriculum_node_id = Column(Integer, primary_key=True)
    status = Column(String(20), default="started", nullable=False)
    mastery_level = Column(Integer, default=0, nullable=False)  # 0 to 100
    last_activity = Column(String(50), default=utcnow_iso)


class AiLog(Base):
    """Prompt/response pair of one generator call."""
    __tablename__ = "ai_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_uid = Column(String(128), nullable=True, index=True)
    session_id = Column(String(64), nullable=True)
    prompt = Column(Text, nullable=True)
    system_prompt = Column(Text, nullable=True)
    response = Column(Text, nullable=True)
    provider = Column(String(50), nullable=True)
    model = Column(String(100), nullable=True)
    created_at = Column(String(50), default=utcnow_iso)
