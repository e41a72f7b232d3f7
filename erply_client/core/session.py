"""
core/session.py
----------------

Session key lifecycle for the Erply API.

Every API call except ``verifyUser`` and ``createInstallation`` needs a
session key.  :class:`SessionManager` caches the key returned by
``verifyUser`` together with its expiry and fetches a new one only when
the cached key is missing or about to expire.  The state lives in
process memory and belongs to a single client instance.
"""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from erply_client.logging_config import logger
from erply_client.schemas.calls import AuthFailure

BOOTSTRAP_CALL = "verifyUser"

# Seconds subtracted from the server-declared session length so that a
# key is dropped shortly before the API would start rejecting it.
SESSION_SAFETY_MARGIN = 30

SendFunc = Callable[[str, Dict[str, Any]], Dict[str, Any]]


@dataclass
class SessionState:
    key: Optional[str] = None
    expires_at: Optional[int] = None

    def usable(self, now: float) -> bool:
        return bool(self.key) and self.expires_at is not None and self.expires_at > now


def _extract_session(response: Any) -> Optional[Tuple[str, int]]:
    """Pull ``(sessionKey, sessionLength)`` out of a ``verifyUser`` response.

    Returns ``None`` when the response does not have the expected
    ``records[0]`` shape or the key is empty.
    """
    try:
        record = response["records"][0]
        key = record["sessionKey"]
        length = int(record["sessionLength"])
    except (KeyError, IndexError, TypeError, ValueError):
        return None
    if not key or not isinstance(key, str):
        return None
    return key, length


class SessionManager:
    """Owns the cached session key and refreshes it on demand.

    ``send`` is the dispatcher used for the ``verifyUser`` call.  The
    lock is held across the check and the refresh, so concurrent
    callers sharing one client trigger at most one ``verifyUser`` and
    the ones waiting behind it pick up its key.
    """

    def __init__(self, send: SendFunc, clock: Callable[[], float] = time.time) -> None:
        self._send = send
        self._clock = clock
        self._state = SessionState()
        self._lock = threading.Lock()

    def ensure_key(self, username: Optional[str], password: Optional[str]) -> Union[str, AuthFailure]:
        """Return a valid session key, calling ``verifyUser`` if needed.

        When ``verifyUser`` answers without a session key the cached key
        is cleared and the answer is returned wrapped in
        :class:`AuthFailure`.  Transport and decode errors of the
        ``verifyUser`` call propagate unchanged and leave the cache as
        it was.
        """
        with self._lock:
            if self._state.usable(self._clock()):
                return self._state.key  # type: ignore[return-value]

            logger.info(json.dumps({
                "event": "session_key_refresh",
                "username": username,
                "had_key": bool(self._state.key),
            }))
            response = self._send(BOOTSTRAP_CALL, {"username": username, "password": password})

            session = _extract_session(response)
            if session is None:
                self._state = SessionState()
                logger.warning(json.dumps({
                    "event": "session_key_rejected",
                    "username": username,
                    "status": response.get("status") if isinstance(response, dict) else None,
                }))
                return AuthFailure(response=response)

            key, length = session
            self._state = SessionState(key=key, expires_at=int(self._clock()) + length - SESSION_SAFETY_MARGIN)
            logger.info(json.dumps({
                "event": "session_key_refreshed",
                "username": username,
                "expires_at": self._state.expires_at,
            }))
            return key

    def snapshot(self) -> Tuple[Optional[str], Optional[int]]:
        """Return a consistent ``(key, expires_at)`` pair."""
        with self._lock:
            return self._state.key, self._state.expires_at

    def is_valid(self) -> bool:
        with self._lock:
            return self._state.usable(self._clock())

    def set_key(self, key: Optional[str]) -> None:
        with self._lock:
            self._state.key = key or None

    def set_expiry(self, expires_at: Optional[int]) -> None:
        with self._lock:
            self._state.expires_at = expires_at

    def seed(self, key: str, expires_at: int) -> None:
        """Replace key and expiry together."""
        with self._lock:
            self._state = SessionState(key=key or None, expires_at=expires_at)

    def clear(self) -> None:
        with self._lock:
            self._state = SessionState()
