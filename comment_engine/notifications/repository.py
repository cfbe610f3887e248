"""Storage interface for notifications."""

import abc
import dataclasses
from uuid import UUID

from .models import Notification


class NotificationRepository(abc.ABC):
    @abc.abstractmethod
    async def add(self, notification: Notification) -> None:
        """Persist a new notification."""

    @abc.abstractmethod
    async def get(self, notification_id: UUID) -> Notification | None:
        """Get a notification by id."""

    @abc.abstractmethod
    async def save(self, notification: Notification) -> None:
        """Persist read-state changes."""

    @abc.abstractmethod
    async def list_for_recipient(self, recipient_id: str) -> list[Notification]:
        """Notifications for a recipient, newest first."""


class InMemoryNotificationRepository(NotificationRepository):
    def __init__(self) -> None:
        self._notifications: dict[UUID, Notification] = {}

    async def add(self, notification: Notification) -> None:
        self._notifications[notification.id] = dataclasses.replace(notification)

    async def get(self, notification_id: UUID) -> Notification | None:
        found = self._notifications.get(notification_id)
        return dataclasses.replace(found) if found else None

    async def save(self, notification: Notification) -> None:
        self._notifications[notification.id] = dataclasses.replace(notification)

    async def list_for_recipient(self, recipient_id: str) -> list[Notification]:
        rows = [
            dataclasses.replace(n)
            for n in self._notifications.values()
            if n.recipient_id == recipient_id
        ]
        rows.sort(key=lambda n: n.created_at, reverse=True)
        return rows
