"""
services/call_service.py
------------------------

Glue between the HTTP routes and :class:`ApiClient`.  Client errors
are logged and translated into ``HTTPException`` here so that route
handlers stay thin.  A failed ``verifyUser`` is not an error at this
level: its answer is returned as is, exactly like the client does.
"""

from __future__ import annotations

import json
from typing import Any, Dict

from fastapi import HTTPException

from erply_client.clients.api_client import ApiClient
from erply_client.core.errors import ConfigurationError, DecodeError, TransportError
from erply_client.logging_config import log_call, logger
from erply_client.schemas.calls import CallRequest, SessionInfo, SessionSeed


def _mask(key: str | None) -> str | None:
    if not key:
        return None
    return f"{key[:4]}…" if len(key) > 4 else "…"


@log_call
def dispatch_call(call: CallRequest, client: ApiClient) -> Any:
    """Forward one API call and return the decoded answer.

    :raises HTTPException: 500 when the client is not configured, 502
        when the API could not be reached or answered with garbage
    """
    logger.info(json.dumps({"event": "api_call_start", "request": call.request}))
    try:
        return client.send(call.request, call.parameters)
    except ConfigurationError as exc:
        logger.error(json.dumps({"event": "api_call_unconfigured", "request": call.request, "detail": exc.detail}))
        raise HTTPException(status_code=500, detail=exc.detail)
    except TransportError as exc:
        raise HTTPException(status_code=502, detail=str(exc))
    except DecodeError as exc:
        raise HTTPException(status_code=502, detail=str(exc))


def describe_session(client: ApiClient) -> SessionInfo:
    key, expires_at = client.session_snapshot()
    return SessionInfo(session_key=_mask(key), expiry_timestamp=expires_at, valid=client.has_valid_session())


@log_call
def seed_session(seed: SessionSeed, client: ApiClient) -> SessionInfo:
    """Install a session key obtained elsewhere."""
    client.seed_session(seed.session_key, seed.expiry_timestamp)
    logger.info(json.dumps({"event": "session_key_seeded", "expires_at": seed.expiry_timestamp}))
    return describe_session(client)


def drop_session(client: ApiClient) -> Dict[str, str]:
    client.clear_session()
    logger.info(json.dumps({"event": "session_key_dropped"}))
    return {"status": "ok"}
