"""Registry of notification categories presented by the host."""

import logging
import threading
from typing import Iterable, Optional, Set

from .models import NotificationCategory

logger = logging.getLogger(__name__)


class NotificationCenter:
    """Holds the categories the host uses to render action buttons."""

    _current: Optional["NotificationCenter"] = None
    _current_lock = threading.Lock()

    def __init__(self):
        self._lock = threading.Lock()
        self._categories: Set[NotificationCategory] = set()

    @classmethod
    def current(cls) -> "NotificationCenter":
        """Return the process-wide notification center."""
        with cls._current_lock:
            if cls._current is None:
                cls._current = cls()
            return cls._current

    def set_notification_categories(self, categories: Iterable[NotificationCategory]) -> None:
        """Replace every registered category with ``categories``."""
        new_categories = set(categories)
        with self._lock:
            self._categories = new_categories
        logger.info(
            f"Registered notification categories: "
            f"{', '.join(sorted(c.identifier for c in new_categories)) or '(none)'}"
        )

    def categories(self) -> Set[NotificationCategory]:
        with self._lock:
            return set(self._categories)

    def category(self, identifier: str) -> Optional[NotificationCategory]:
        with self._lock:
            for category in self._categories:
                if category.identifier == identifier:
                    return category
        return None
