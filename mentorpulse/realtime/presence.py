"""Process-wide record of which users currently hold a live connection."""

import logging
import threading
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """
    Map of user id to connection handle.

    Lookups and writes happen both on the event loop and in worker threads
    (HTTP handlers), so every access takes the lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handles: Dict[int, Any] = {}

    def record(self, user_id: int, handle: Any) -> None:
        with self._lock:
            self._handles[user_id] = handle
        logger.debug("User %s is online", user_id)

    def remove(self, user_id: int, handle: Optional[Any] = None) -> bool:
        """
        Drop the entry for ``user_id``.

        With ``handle`` the entry is only dropped while it still points at that
        handle; a newer connection that replaced it stays registered.
        """
        with self._lock:
            current = self._handles.get(user_id)
            if current is None:
                return False
            if handle is not None and current is not handle:
                return False
            del self._handles[user_id]
        logger.debug("User %s is offline", user_id)
        return True

    def is_online(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._handles

    def online_user_ids(self) -> List[int]:
        with self._lock:
            return sorted(self._handles)

    def clear(self) -> None:
        with self._lock:
            self._handles.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
