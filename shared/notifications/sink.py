"""Toast/notification sinks for user-visible, non-blocking findings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from shared.logging.logger import get_logger

log = get_logger("shared.notifications")

NOTIFICATION_LEVELS = ("info", "warning", "error")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class Notification:
    level: str
    title: str
    message: str
    created_at: str = field(default_factory=_utc_now_iso)

    def __post_init__(self) -> None:
        if self.level not in NOTIFICATION_LEVELS:
            self.level = "info"


class NotificationSink(Protocol):
    def notify(self, level: str, title: str, message: str) -> None:
        ...


class LoggingNotificationSink:
    """Default sink: routes notifications into the runtime log."""

    def notify(self, level: str, title: str, message: str) -> None:
        text = f"[{title}] {message}"
        if level == "error":
            log.error(text)
        elif level == "warning":
            log.warning(text)
        else:
            log.info(text)


class BufferedNotificationSink:
    """
    Collects notifications in memory for a rendering layer to drain.
    Optionally forwards each one to another sink as well.
    """

    def __init__(self, forward: Optional[NotificationSink] = None) -> None:
        self._items: List[Notification] = []
        self._forward = forward

    def notify(self, level: str, title: str, message: str) -> None:
        self._items.append(Notification(level=level, title=title, message=message))
        if self._forward is not None:
            self._forward.notify(level, title, message)

    @property
    def items(self) -> List[Notification]:
        return list(self._items)

    def drain(self) -> List[Notification]:
        items, self._items = self._items, []
        return items


__all__ = [
    "Notification",
    "NotificationSink",
    "LoggingNotificationSink",
    "BufferedNotificationSink",
]
