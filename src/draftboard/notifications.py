from __future__ import annotations

import itertools
import logging
from collections import deque
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

Level = Literal["info", "success", "error"]

_LOG_LEVELS = {"info": logging.INFO, "success": logging.INFO, "error": logging.WARNING}


@dataclass(frozen=True)
class Notification:
    id: int
    level: Level
    message: str


class Notifier:
    """Transient, dismissible user notifications. Oldest entries fall off past ``limit``."""

    def __init__(self, limit: int = 20) -> None:
        self._items: deque[Notification] = deque(maxlen=limit)
        self._ids = itertools.count(1)

    def notify(self, level: Level, message: str) -> Notification:
        item = Notification(id=next(self._ids), level=level, message=message)
        self._items.append(item)
        logger.log(_LOG_LEVELS[level], "[%s] %s", level, message)
        return item

    def error(self, message: str) -> Notification:
        return self.notify("error", message)

    def dismiss(self, notification_id: int) -> bool:
        for item in self._items:
            if item.id == notification_id:
                self._items.remove(item)
                return True
        return False

    @property
    def active(self) -> list[Notification]:
        return list(self._items)
