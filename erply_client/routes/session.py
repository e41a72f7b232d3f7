"""
routes/session.py
------------------

Inspect, seed or drop the session key held by the shared client.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from erply_client.clients.api_client import ApiClient
from erply_client.routes.calls import get_api_client
from erply_client.schemas.calls import SessionInfo, SessionSeed
from erply_client.services.call_service import describe_session, drop_session, seed_session

router = APIRouter(prefix="/session")


@router.get("", response_model=SessionInfo)
def get_session(client: ApiClient = Depends(get_api_client)):
    return describe_session(client)


@router.put("", response_model=SessionInfo)
def put_session(seed: SessionSeed, client: ApiClient = Depends(get_api_client)):
    return seed_session(seed, client)


@router.delete("")
def delete_session(client: ApiClient = Depends(get_api_client)):
    return drop_session(client)
