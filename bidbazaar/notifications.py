"""Notifications for the signed-in user, kept as a soft cache of the server list."""

import logging
from datetime import datetime, timezone
from threading import RLock
from typing import List, Optional

from .api import ApiClient
from .config import Config
from .errors import NetworkOrServerError
from .lifecycle import Ticker
from .models import Notification

logger = logging.getLogger(__name__)


class NotificationStore:
    """The signed-in user's notifications and unread count."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.notifications: List[Notification] = []
        self.unread_count = 0
        self.loading = False
        self._lock = RLock()

    def fetch(self, page: int = 1, unread_only: bool = False) -> List[Notification]:
        self.loading = True
        try:
            result = self.api.get_notifications(page=page, unread_only=unread_only)
        except NetworkOrServerError as e:
            logger.error("Error fetching notifications: %s", e)
            with self._lock:
                self.notifications = []
                self.unread_count = 0
            return []
        finally:
            self.loading = False
        with self._lock:
            self.notifications = result["notifications"]
            self.unread_count = result["unread_count"]
            return list(self.notifications)

    def fetch_unread_count(self) -> int:
        try:
            count = self.api.get_unread_count()
        except NetworkOrServerError as e:
            logger.error("Error fetching unread count: %s", e)
            count = 0
        with self._lock:
            self.unread_count = count
        return count

    def mark_as_read(self, notification_id: str) -> bool:
        try:
            self.api.mark_notification_read(notification_id)
        except NetworkOrServerError as e:
            logger.error("Error marking notification as read: %s", e)
            return False
        now = datetime.now(timezone.utc)
        with self._lock:
            self.notifications = [
                n.model_copy(update={"read": True, "read_at": now}) if n.id == notification_id else n
                for n in self.notifications
            ]
            self.unread_count = max(0, self.unread_count - 1)
        return True

    def mark_all_as_read(self) -> bool:
        try:
            self.api.mark_all_notifications_read()
        except NetworkOrServerError as e:
            logger.error("Error marking all notifications as read: %s", e)
            return False
        now = datetime.now(timezone.utc)
        with self._lock:
            self.notifications = [n.model_copy(update={"read": True, "read_at": now})
                                  for n in self.notifications]
            self.unread_count = 0
        return True

    def delete(self, notification_id: str) -> bool:
        try:
            self.api.delete_notification(notification_id)
        except NetworkOrServerError as e:
            logger.error("Error deleting notification: %s", e)
            return False
        with self._lock:
            deleted = next((n for n in self.notifications if n.id == notification_id), None)
            self.notifications = [n for n in self.notifications if n.id != notification_id]
            if deleted is not None and not deleted.read:
                self.unread_count = max(0, self.unread_count - 1)
        return True

    def add(self, notification: Notification) -> None:
        """Prepend a notification pushed from elsewhere."""
        with self._lock:
            self.notifications = [notification] + self.notifications
            if not notification.read:
                self.unread_count += 1

    def start_polling(self, interval: Optional[float] = None) -> Ticker:
        """Poll the unread count in the background; stop the returned ticker to end it."""
        ticker = Ticker(self.fetch_unread_count,
                        interval if interval is not None else Config.NOTIFICATION_POLL_SECONDS,
                        name="notification-poll")
        ticker.start()
        return ticker
