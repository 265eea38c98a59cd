from datetime import datetime
from typing import Dict, Iterable, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from planwise.models.notification_settings import NotificationSettings
from planwise.models.task import Goal, Project, Task, TaskStatus


def list_task_start_recipients(db: Session) -> List[NotificationSettings]:
    stmt = (
        select(NotificationSettings)
        .where(NotificationSettings.whatsapp_reminders_enabled == True)  # noqa: E712
        .where(NotificationSettings.whatsapp_task_start_reminder_enabled == True)  # noqa: E712
        .where(NotificationSettings.whatsapp_phone_number.is_not(None))
        .order_by(NotificationSettings.user_id.asc())
    )
    return list(db.execute(stmt).scalars())


def list_weekly_review_recipients(db: Session) -> List[NotificationSettings]:
    stmt = (
        select(NotificationSettings)
        .where(NotificationSettings.whatsapp_reminders_enabled == True)  # noqa: E712
        .where(NotificationSettings.whatsapp_weekly_review_enabled == True)  # noqa: E712
        .where(NotificationSettings.whatsapp_phone_number.is_not(None))
        .order_by(NotificationSettings.user_id.asc())
    )
    return list(db.execute(stmt).scalars())


def get_notification_settings(db: Session, user_id: str) -> NotificationSettings | None:
    return db.get(NotificationSettings, user_id)


def get_open_tasks_due_between(db: Session, user_id: str, start: datetime, end: datetime) -> List[Task]:
    stmt = (
        select(Task)
        .where(Task.user_id == user_id)
        .where(Task.status.in_(TaskStatus.OPEN))
        .where(Task.due_date.is_not(None))
        .where(Task.due_date >= start)
        .where(Task.due_date <= end)
        .order_by(Task.due_date.asc())
    )
    return list(db.execute(stmt).scalars())


def project_ids_for(tasks: Iterable[Task]) -> List[str]:
    ids: List[str] = []
    for task in tasks:
        for project_id in [task.project_id, *(task.project_ids or [])]:
            if project_id and project_id not in ids:
                ids.append(project_id)
    return ids


def get_project_titles(db: Session, user_id: str, project_ids: List[str]) -> Dict[str, str]:
    if not project_ids:
        return {}
    stmt = (
        select(Project.id, Project.title)
        .where(Project.user_id == user_id)
        .where(Project.id.in_(project_ids))
    )
    return {row.id: row.title for row in db.execute(stmt)}


def list_tasks_for_user(db: Session, user_id: str) -> List[Task]:
    return list(db.execute(select(Task).where(Task.user_id == user_id)).scalars())


def list_goals_for_user(db: Session, user_id: str) -> List[Goal]:
    return list(db.execute(select(Goal).where(Goal.user_id == user_id)).scalars())
