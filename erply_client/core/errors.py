"""Exceptions raised by the Erply API client"""

from __future__ import annotations

from typing import Optional


class ApiClientError(Exception):
    """Base exception for the Erply API client"""


class ConfigurationError(ApiClientError):
    """Required configuration is missing; raised before any I/O"""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class TransportError(ApiClientError):
    """The exchange could not be completed or returned a non-200 status.

    ``error_code`` and ``error_text`` are set when the transport itself
    failed (connection refused, timeout, ...).  Otherwise ``status_code``
    holds the HTTP status the API answered with.
    """

    def __init__(
        self,
        error_code: Optional[int] = None,
        error_text: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.error_code = error_code
        self.error_text = error_text
        self.status_code = status_code
        if error_code:
            msg = f"Transport error {error_code}: {error_text or ''}"
        else:
            msg = f"HTTP status code {status_code}"
        super().__init__(msg)


class DecodeError(ApiClientError):
    """The API answered 200 but the body is not valid JSON"""

    def __init__(self, detail: str, body: str = ""):
        self.detail = detail
        self.body = body
        super().__init__(f"Cannot decode Erply API JSON response: {detail}")
