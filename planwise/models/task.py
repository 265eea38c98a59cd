"""
Read models for the planner data the reminder jobs look at.

Rows are owned and written by the web client; this service only queries them.
"""
from sqlalchemy import Column, String, DateTime, Integer, Index

from planwise.db.base import Base, JSONType
from planwise.utils.timezone import utc_now


class TaskStatus:
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ARCHIVED = "archived"

    OPEN = (TODO, IN_PROGRESS)


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    priority = Column(String(20), nullable=False, default="medium")  # low, medium, high, urgent
    status = Column(String(20), nullable=False, default=TaskStatus.TODO)
    due_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)

    # Legacy single project reference plus the multi-project list
    project_id = Column(String, nullable=True)
    project_ids = Column(JSONType, nullable=True)
    goal_id = Column(String, nullable=True)
    goal_ids = Column(JSONType, nullable=True)
    tags = Column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_tasks_user_status_due", "user_id", "status", "due_date"),
    )


class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)


class Goal(Base):
    __tablename__ = "goals"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False)
    progress = Column(Integer, nullable=True)
    weekly_plan = Column(JSONType, nullable=True)  # [{"title": ..., "weekday": 0-6}], 0 = Sunday
