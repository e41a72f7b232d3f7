"""
erply_client package
--------------------

Client for the Erply API with transparent session key handling, plus
a small FastAPI pass-through service (:mod:`erply_client.main`).
Library users only need :class:`ApiClient` and :class:`ClientConfig`.
"""

from .clients.api_client import ApiClient  # noqa: F401
from .core.config import ClientConfig, Settings  # noqa: F401
from .core.errors import ApiClientError, ConfigurationError, DecodeError, TransportError  # noqa: F401

__all__ = [
    "ApiClient",
    "ClientConfig",
    "Settings",
    "ApiClientError",
    "ConfigurationError",
    "DecodeError",
    "TransportError",
]
