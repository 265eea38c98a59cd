from .notification_settings import NotificationSettings
from .notification_delivery import NotificationDelivery, DeliveryStatus
from .task import Task, TaskStatus, Project, Goal

__all__ = [
    "NotificationSettings",
    "NotificationDelivery",
    "DeliveryStatus",
    "Task",
    "TaskStatus",
    "Project",
    "Goal",
]
