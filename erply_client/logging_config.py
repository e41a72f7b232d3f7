"""
logging_config.py
------------------

Shared logging configuration and helpers for the Erply API client.
Output goes through Python's built‑in ``logging`` module and every
message is a JSON string so that log shippers can parse it without
custom grok patterns.

Import ``logger`` instead of calling ``logging.info`` directly.  The
``log_call`` decorator records entry and exit of service functions at
DEBUG level, and ``log_http_request`` records outbound API calls.
Credentials and session keys never reach the log output: every
payload passes through ``_sanitize`` first.
"""

from __future__ import annotations

import inspect
import json
import logging
import sys
from functools import wraps
from typing import Any, Callable, Dict

# -----------------------------------------------------------------------------
# Configure global logging
# -----------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("erply")

# Substrings of parameter names whose values must never be logged.  Erply
# authenticates with sessionKey/serviceKey/applicationKey form fields.
SENSITIVE_KEYS = ("password", "sessionkey", "session_key", "servicekey", "applicationkey", "token", "secret")


def _sanitize(obj: Any) -> Any:
    """Recursively sanitise objects for logging.

    Dictionaries lose every key that looks like a credential (see
    ``SENSITIVE_KEYS``).  Lists and tuples are processed element‑wise
    and byte strings are replaced by a size marker.  Pydantic models
    are dumped first so that their fields get the same treatment.

    Parameters
    ----------
    obj : Any
        Arbitrary Python object to sanitise.

    Returns
    -------
    Any
        A sanitised representation of the input suitable for JSON serialisation.
    """
    if isinstance(obj, (bytes, bytearray)):
        return f"<binary {len(obj)} bytes>"
    if isinstance(obj, dict):
        clean: Dict[str, Any] = {}
        for k, v in obj.items():
            if any(keyword in str(k).lower() for keyword in SENSITIVE_KEYS):
                continue
            clean[k] = _sanitize(v)
        return clean
    if isinstance(obj, (list, tuple)):
        return [_sanitize(i) for i in obj]
    if hasattr(obj, "model_dump"):
        return _sanitize(obj.model_dump())
    try:
        return json.loads(json.dumps(obj))
    except (TypeError, ValueError):
        return str(obj)


def log_call(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to log entry and exit of functions.

    A ``call_start`` event is emitted at DEBUG level before the wrapped
    function runs and a ``call_end`` event after it returns.  Arguments
    and the return value are passed through ``_sanitize``.

    Examples
    --------

    >>> @log_call
    ... def add(a, b):
    ...     return a + b
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(json.dumps({
                "event": "call_start",
                "function": func.__name__,
                "args": _sanitize(args),
                "kwargs": _sanitize(kwargs),
            }))
        result = func(*args, **kwargs)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(json.dumps({
                "event": "call_end",
                "function": func.__name__,
                "result": _sanitize(result),
            }))
        return result

    # FastAPI inspects the signature of route handlers that delegate here.
    wrapper.__signature__ = inspect.signature(func)  # type: ignore[attr-defined]
    return wrapper


def log_http_request(method: str, url: str, *, params: Dict[str, Any] | None = None,
                     status: int | None = None, duration_ms: float | None = None,
                     error_code: int | None = None) -> None:
    """Log an outbound HTTP request at DEBUG level.

    Call this before sending (without ``status``) and again once the
    exchange is over.  Only high‑level information is recorded: method,
    URL, the API call name, sanitised parameters, status, transport
    error code and duration.

    Parameters
    ----------
    method : str
        The HTTP method (always ``POST`` for the Erply API).
    url : str
        The URL being requested.
    params : dict, optional
        Form parameters.  Credentials and keys are removed.
    status : int, optional
        Response status code (log end only).
    duration_ms : float, optional
        Time taken in milliseconds (log end only).
    error_code : int, optional
        Transport error code when the exchange could not complete.
    """
    data: Dict[str, Any] = {
        "event": "http_request",
        "method": method,
        "url": url,
    }
    if params:
        data["request"] = params.get("request")
        data["params"] = _sanitize(params)
    if status is not None:
        data["status"] = status
    if error_code:
        data["error_code"] = error_code
    if duration_ms is not None:
        data["duration_ms"] = round(duration_ms, 2)
    logger.debug(json.dumps(data))
