"""
clients/api_client.py
----------------------

Client for a single Erply account.  :class:`ApiClient` turns an API
call name plus parameters into the decoded JSON answer.  It injects
``request`` and ``clientCode``, obtains a session key when the call
needs one, posts the form through the transport and tells transport
failures apart from undecodable answers.

Application level errors are not interpreted here.  When the API is
able to respond the status code is always 200, even for validation or
permission errors; check ``status.errorCode`` in the returned
structure (``0`` means success).
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable, Mapping, Optional, Tuple

import orjson

from erply_client.core.config import ClientConfig, Settings
from erply_client.core.errors import ConfigurationError, DecodeError, TransportError
from erply_client.core.session import BOOTSTRAP_CALL, SessionManager
from erply_client.core.transport import HttpxTransport, Transport
from erply_client.logging_config import logger
from erply_client.schemas.calls import AuthFailure, CallRequest, TransportOutcome

# Calls that are made without any authentication parameter.
UNAUTHENTICATED_CALLS = frozenset({BOOTSTRAP_CALL, "createInstallation"})


def describe_outcome(outcome: TransportOutcome) -> str:
    if outcome.error_code:
        return f"Transport error {outcome.error_code}: {outcome.error_text or ''}"
    if outcome.status_code is not None and outcome.status_code != 200:
        return f"HTTP status code {outcome.status_code}"
    return ""


class ApiClient:
    """Connects to an Erply account and sends API calls.

    The session key is created by the first :meth:`send` that needs one
    and reused until shortly before it expires.  A previously obtained
    key can be seeded with :meth:`seed_session`.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or ClientConfig()
        self._transport = transport or HttpxTransport()
        self._session = SessionManager(self.send, clock=clock)
        self._last = TransportOutcome()

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[Transport] = None) -> "ApiClient":
        return cls(settings.client_config(), transport=transport)

    def close(self) -> None:
        self._transport.close()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def _reconfigure(self, **changes: Any) -> "ApiClient":
        self.config = self.config.replace(**changes)
        return self

    def set_url(self, url: str) -> "ApiClient":
        return self._reconfigure(url=url)

    def set_client_code(self, client_code: str) -> "ApiClient":
        return self._reconfigure(client_code=client_code)

    def set_username(self, username: str) -> "ApiClient":
        return self._reconfigure(username=username)

    def set_password(self, password: str) -> "ApiClient":
        return self._reconfigure(password=password)

    def set_connection_timeout(self, seconds: int) -> "ApiClient":
        return self._reconfigure(connection_timeout=seconds)

    def set_execution_timeout(self, seconds: int) -> "ApiClient":
        return self._reconfigure(execution_timeout=seconds)

    def set_session_key(self, session_key: str) -> "ApiClient":
        self._session.set_key(session_key)
        return self

    def set_expiry_timestamp(self, expiry_timestamp: int) -> "ApiClient":
        self._session.set_expiry(expiry_timestamp)
        return self

    def seed_session(self, session_key: str, expiry_timestamp: int) -> "ApiClient":
        """Install a previously obtained key and its expiry in one step."""
        self._session.seed(session_key, expiry_timestamp)
        return self

    def clear_session(self) -> None:
        self._session.clear()

    # ------------------------------------------------------------------
    # State of the session and of the last exchange
    # ------------------------------------------------------------------

    @property
    def session_key(self) -> Optional[str]:
        return self._session.snapshot()[0]

    @property
    def expiry_timestamp(self) -> Optional[int]:
        return self._session.snapshot()[1]

    def session_snapshot(self) -> Tuple[Optional[str], Optional[int]]:
        return self._session.snapshot()

    def has_valid_session(self) -> bool:
        return self._session.is_valid()

    @property
    def transport_error_code(self) -> Optional[int]:
        return self._last.error_code

    @property
    def transport_error_text(self) -> Optional[str]:
        return self._last.error_text

    @property
    def status_code(self) -> Optional[int]:
        return self._last.status_code

    @property
    def raw_output(self) -> str:
        return self._last.body

    def has_failed(self) -> bool:
        return self._last.failed

    def error_message(self) -> str:
        """Human readable description of the last transport failure, or ``""``."""
        return describe_outcome(self._last)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def send(self, request: str, parameters: Optional[Mapping[str, Any]] = None) -> Any:
        """Send an API call and return the decoded answer.

        :param request: name of the API call, e.g. ``getProducts``
        :param parameters: input parameters of the call
        :raises ConfigurationError: if no API URL is configured
        :raises TransportError: if the exchange failed or the status was not 200
        :raises DecodeError: if the answer is not valid JSON
        :return: the decoded answer, or the ``verifyUser`` answer when no
                 session key could be obtained
        """
        config = self.config
        if not config.url:
            raise ConfigurationError("API URL has not been defined.")

        call = CallRequest(request=request, parameters=dict(parameters or {}))
        params = call.outgoing(config.client_code)

        if request not in UNAUTHENTICATED_CALLS and not call.has_credentials():
            key = self._session.ensure_key(config.username, config.password)
            if isinstance(key, AuthFailure):
                return key.response
            params["sessionKey"] = key

        outcome = self._transport.post(
            config.url,
            params,
            connection_timeout=config.connection_timeout,
            execution_timeout=config.execution_timeout,
        )
        self._last = outcome

        if outcome.failed:
            logger.error(json.dumps({
                "event": "api_call_failed",
                "request": request,
                "error_code": outcome.error_code,
                "status_code": outcome.status_code,
                "detail": describe_outcome(outcome),
            }))
            raise TransportError(outcome.error_code, outcome.error_text, outcome.status_code)

        try:
            return orjson.loads(outcome.body)
        except orjson.JSONDecodeError as exc:
            logger.error(json.dumps({
                "event": "decode_error",
                "request": request,
                "detail": str(exc),
            }))
            raise DecodeError(str(exc), outcome.body) from exc
