"""
Synchronous HTTP transport for the Erply API.

The transport performs exactly one form‑encoded POST per call and
reports what happened as a :class:`TransportOutcome` instead of
raising.  It distinguishes "could not complete the exchange" (an
error code, numbered like libcurl's since that is what the Erply
documentation refers to) from "the server answered with some status".
There is no retry and no status interpretation here; both belong to
the caller.

Usage example:

    from erply_client.core.transport import HttpxTransport
    outcome = HttpxTransport().post(url, {"request": "getProducts"})
"""

from __future__ import annotations

import json
import ssl
import time
from typing import Any, Callable, Mapping, Optional, Protocol, Tuple

import httpx

from erply_client.logging_config import log_http_request, logger
from erply_client.schemas.calls import TransportOutcome
from erply_client.utils.params import flatten_params

# libcurl error numbers
UNSUPPORTED_PROTOCOL = 1
COULDNT_CONNECT = 7
OPERATION_TIMEDOUT = 28
SSL_CONNECT_ERROR = 35
RECV_ERROR = 56


class Transport(Protocol):
    """Collaborator contract used by the client to reach the API."""

    def post(
        self,
        url: str,
        params: Mapping[str, Any],
        *,
        connection_timeout: Optional[int] = None,
        execution_timeout: Optional[int] = None,
    ) -> TransportOutcome:
        ...

    def close(self) -> None:
        ...


def _caused_by_tls(exc: BaseException) -> bool:
    seen = set()
    cause: Optional[BaseException] = exc
    while cause is not None and id(cause) not in seen:
        if isinstance(cause, ssl.SSLError):
            return True
        seen.add(id(cause))
        cause = cause.__cause__ or cause.__context__
    return False


def error_code_for(exc: httpx.TransportError) -> int:
    """Map an ``httpx`` transport exception onto a libcurl error number."""
    if isinstance(exc, httpx.TimeoutException):
        return OPERATION_TIMEDOUT
    if isinstance(exc, httpx.UnsupportedProtocol):
        return UNSUPPORTED_PROTOCOL
    if isinstance(exc, httpx.ConnectError):
        return SSL_CONNECT_ERROR if _caused_by_tls(exc) else COULDNT_CONNECT
    return RECV_ERROR


def build_timeout(connection_timeout: Optional[int], execution_timeout: Optional[int]) -> httpx.Timeout:
    """Translate the client's timeouts into an ``httpx.Timeout``.

    ``None`` or ``0`` means no limit, the same as on the original cURL
    client.  The per-operation limits set here are only a first line:
    :meth:`HttpxTransport.post` also enforces ``execution_timeout`` as a
    deadline for the whole exchange.
    """
    return httpx.Timeout(execution_timeout or None, connect=connection_timeout or None)


class HttpxTransport:
    """Transport backed by a pooled ``httpx.Client``.

    One instance is meant to live as long as the owning
    :class:`~erply_client.clients.api_client.ApiClient` and is closed
    together with it.  ``clock`` measures the execution deadline.
    """

    def __init__(self, client: Optional[httpx.Client] = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self._client = client or httpx.Client()
        self._clock = clock

    def close(self) -> None:
        """Close the underlying HTTPX client and release resources."""
        self._client.close()

    def _check_deadline(self, deadline: Optional[float], execution_timeout: Optional[int],
                        request: httpx.Request) -> None:
        if deadline is not None and self._clock() > deadline:
            raise httpx.ReadTimeout(f"Operation timed out after {execution_timeout} seconds", request=request)

    def _exchange(self, url: str, form: Mapping[str, str],
                  connection_timeout: Optional[int], execution_timeout: Optional[int]) -> Tuple[int, str]:
        """POST ``form`` and read the whole body before ``execution_timeout`` runs out.

        httpx resets its read timer on every chunk, so a server trickling
        bytes would never time out on its own.  Passing the deadline is
        reported as ``httpx.ReadTimeout``.
        """
        deadline = self._clock() + execution_timeout if execution_timeout else None
        with self._client.stream(
            "POST",
            url,
            data=form,
            timeout=build_timeout(connection_timeout, execution_timeout),
        ) as resp:
            chunks = []
            self._check_deadline(deadline, execution_timeout, resp.request)
            for chunk in resp.iter_bytes():
                chunks.append(chunk)
                self._check_deadline(deadline, execution_timeout, resp.request)
            body = b"".join(chunks).decode(resp.encoding or "utf-8", errors="replace")
        return resp.status_code, body

    def post(
        self,
        url: str,
        params: Mapping[str, Any],
        *,
        connection_timeout: Optional[int] = None,
        execution_timeout: Optional[int] = None,
    ) -> TransportOutcome:
        form = flatten_params(params)
        start_time = time.time()
        log_http_request("POST", url, params=form)
        try:
            status_code, body = self._exchange(url, form, connection_timeout, execution_timeout)
        except httpx.TransportError as exc:
            duration_ms = (time.time() - start_time) * 1000
            code = error_code_for(exc)
            logger.warning(json.dumps({
                "event": "transport_error",
                "url": url,
                "request": form.get("request"),
                "error_code": code,
                "detail": str(exc),
            }))
            log_http_request("POST", url, params=form, duration_ms=duration_ms, error_code=code)
            return TransportOutcome(error_code=code, error_text=str(exc) or type(exc).__name__)
        duration_ms = (time.time() - start_time) * 1000
        log_http_request("POST", url, params=form, status=status_code, duration_ms=duration_ms)
        return TransportOutcome(body=body, status_code=status_code)
