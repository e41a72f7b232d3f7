"""
routes/calls.py
----------------

Generic pass-through endpoint: ``POST /calls/{request}`` forwards the
JSON body as the parameters of the named Erply API call and returns
the decoded answer unchanged.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from erply_client.clients.api_client import ApiClient
from erply_client.schemas.calls import CallRequest
from erply_client.services.call_service import dispatch_call

router = APIRouter()


def get_api_client(request: Request) -> ApiClient:
    """Dependency to retrieve the shared API client from the application state."""
    return request.app.state.api_client


@router.post("/calls/{request_name}")
def post_call(
    request_name: str,
    parameters: Optional[Dict[str, Any]] = Body(default=None),
    client: ApiClient = Depends(get_api_client),
):
    return dispatch_call(CallRequest(request=request_name, parameters=parameters or {}), client)
