"""
schemas/calls.py
-----------------

Pydantic models describing a single API call and its outcome.  These
are request‑scoped: the client builds them for every ``send`` and
nothing is persisted.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

# Parameters that already authenticate a call on their own.
AUTH_PARAMETERS = ("sessionKey", "serviceKey", "applicationKey")


class CallRequest(BaseModel):
    """An API call name plus its input parameters."""

    request: str
    parameters: Dict[str, Any] = Field(default_factory=dict)

    def has_credentials(self) -> bool:
        return any(self.parameters.get(name) for name in AUTH_PARAMETERS)

    def outgoing(self, client_code: Optional[str]) -> Dict[str, Any]:
        """Return the parameter set sent over the wire.

        ``request`` and ``clientCode`` are injected into a copy; the
        caller's mapping stays untouched.
        """
        params = dict(self.parameters)
        params["request"] = self.request
        params["clientCode"] = client_code
        return params


class TransportOutcome(BaseModel):
    """Result of one physical request.

    ``error_code``/``error_text`` are set only when the exchange could
    not be completed; ``body`` is empty in that case.
    """

    model_config = ConfigDict(frozen=True)

    body: str = ""
    error_code: Optional[int] = None
    error_text: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def failed(self) -> bool:
        return bool(self.error_code) or self.status_code != 200


class AuthFailure(BaseModel):
    """``verifyUser`` completed but returned no usable session key.

    ``response`` is the decoded API answer, kept verbatim so callers
    can read ``status.errorCode`` and friends.
    """

    model_config = ConfigDict(frozen=True)

    response: Any


class SessionInfo(BaseModel):
    session_key: Optional[str] = None
    expiry_timestamp: Optional[int] = None
    valid: bool = False


class SessionSeed(BaseModel):
    session_key: str
    expiry_timestamp: int
