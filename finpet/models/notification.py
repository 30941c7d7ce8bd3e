# finpet/models/notification.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from finpet.models.pet import utcnow


class NotificationSeverity(str, Enum):
    INFO = "default"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    title: str
    description: str
    severity: NotificationSeverity = NotificationSeverity.INFO
    created_at: datetime = Field(default_factory=utcnow)


def info(title: str, description: str) -> Notification:
    return Notification(title=title, description=description)


def destructive(title: str, description: str) -> Notification:
    return Notification(title=title, description=description, severity=NotificationSeverity.DESTRUCTIVE)
