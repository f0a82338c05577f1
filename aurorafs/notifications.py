"""
Notification Sink

User-visible success/error events emitted by the filesystem core.
Delivery is fire-and-forget: sinks return nothing and a failing
sink never fails the operation that triggered it.

Author: YSNRFD
Version: 1.0.0
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List

from aurorafs.logger import get_logger


class NotificationType(Enum):
    """Severity of a user-visible notification."""
    SUCCESS = 'success'
    WARNING = 'warning'
    ERROR = 'error'


@dataclass
class Notification:
    """A single notification."""
    type: NotificationType
    source: str
    message: str
    subtitle: Optional[str] = None
    timestamp: float = field(default_factory=time.time)


class NotificationSink(ABC):
    """Receiver of notifications (a desktop toast area, a terminal, a test)."""

    @abstractmethod
    def notify(
        self,
        type: NotificationType,
        source: str,
        message: str,
        subtitle: Optional[str] = None
    ) -> None:
        """Deliver one notification."""


class LoggingNotifier(NotificationSink):
    """Writes notifications to the log; the default sink when running headless."""

    def __init__(self):
        self._logger = get_logger('notifications')

    def notify(self, type, source, message, subtitle=None):
        context = {'source': source}
        if subtitle:
            context['subtitle'] = subtitle
        if type == NotificationType.ERROR:
            self._logger.warning(message, context=context)
        else:
            self._logger.info(message, context=context)


class RecordingNotifier(NotificationSink):
    """
    Keeps every notification in a list.

    Example:
        >>> sink = RecordingNotifier()
        >>> sink.notify(NotificationType.ERROR, 'File Manager', 'Permission denied')
        >>> sink.last.message
        'Permission denied'
    """

    def __init__(self):
        self.notifications: List[Notification] = []
        self._lock = threading.Lock()

    def notify(self, type, source, message, subtitle=None):
        with self._lock:
            self.notifications.append(Notification(type, source, message, subtitle))

    @property
    def last(self) -> Optional[Notification]:
        with self._lock:
            return self.notifications[-1] if self.notifications else None

    def of_type(self, type: NotificationType) -> List[Notification]:
        with self._lock:
            return [n for n in self.notifications if n.type == type]

    def clear(self) -> None:
        with self._lock:
            self.notifications.clear()
