"""
Local session state.

The session cookie itself is httpOnly and lives in the HTTP client's cookie
jar; this module only tracks who is logged in so caches can be keyed per
user and dropped when the backend answers 401.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from kosan.core.logging import user_id as log_user_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """Identity of the authenticated tenant"""

    id: int
    username: str
    role: str = "tenant"
    email: Optional[str] = None


class SessionState:
    """Holds the current user and notifies listeners when the session ends"""

    def __init__(self, user: Optional[CurrentUser] = None):
        self._user = user
        self._listeners: List[Callable[[CurrentUser], None]] = []
        self._lock = threading.Lock()
        if user is not None:
            log_user_id.set(str(user.id))

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    def current_user(self) -> Optional[CurrentUser]:
        return self._user

    def cache_identity(self) -> str:
        """Key fragment for per-user caches"""
        return str(self._user.id) if self._user else "guest"

    def set_user(self, user: CurrentUser) -> None:
        with self._lock:
            self._user = user
        log_user_id.set(str(user.id))
        logger.info("Session started", extra={"username": user.username, "role": user.role})

    def on_cleared(self, listener: Callable[[CurrentUser], None]) -> None:
        """Register a callback run with the departing user on ``clear()``"""
        self._listeners.append(listener)

    def clear(self) -> None:
        with self._lock:
            departing, self._user = self._user, None
        log_user_id.set(None)
        if departing is None:
            return

        logger.info("Session cleared", extra={"departing_user_id": departing.id})
        for listener in list(self._listeners):
            listener(departing)
