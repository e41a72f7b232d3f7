"""
core/config.py
----------------

Connection settings for the Erply API client.

``Settings`` is loaded from the environment with ``pydantic-settings``
(variables prefixed with ``ERPLY_``) and is used by the HTTP surface
to build its shared client.  ``ClientConfig`` is the immutable
connection profile an :class:`~erply_client.clients.api_client.ApiClient`
works with; library users normally build it directly.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientConfig(BaseModel):
    """Connection profile of one Erply account.

    The API URL is typically ``https://{client_code}.erply.com/api/``.
    The trailing slash is required by the API, so it is appended when
    missing.  An empty URL is stored as ``None``: the client refuses to
    send anything until a URL is configured.
    """

    model_config = ConfigDict(frozen=True)

    url: Optional[str] = None
    client_code: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    connection_timeout: Optional[int] = Field(default=None, ge=0, description="Connect timeout in seconds.")
    execution_timeout: Optional[int] = Field(default=None, ge=0, description="Whole-exchange timeout in seconds.")

    @field_validator("url")
    @classmethod
    def _normalise_url(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        if not value.endswith("/"):
            value += "/"
        return value

    def replace(self, **changes) -> "ClientConfig":
        """Return a validated copy with ``changes`` applied."""
        return ClientConfig(**{**self.model_dump(), **changes})


class Settings(BaseSettings):
    """Client settings loaded from environment variables.

    For example ``ERPLY_URL=https://123456.erply.com/api`` and
    ``ERPLY_CLIENT_CODE=123456``.  See
    :class:`pydantic_settings.BaseSettings` for the mapping rules.
    """

    url: Optional[str] = Field(None, description="Erply API endpoint.")
    client_code: Optional[str] = Field(None, description="Erply account number.")
    username: Optional[str] = Field(None, description="API user name.")
    password: Optional[str] = Field(None, description="API user password.")
    connection_timeout: Optional[int] = Field(None, ge=0, description="Connect timeout in seconds.")
    execution_timeout: Optional[int] = Field(None, ge=0, description="Whole-exchange timeout in seconds.")

    model_config = SettingsConfigDict(env_prefix="ERPLY_", env_file=None, case_sensitive=False)

    def client_config(self) -> ClientConfig:
        return ClientConfig(**self.model_dump())


@lru_cache()
def get_settings() -> Settings:
    """Return a cached instance of the settings."""
    return Settings()
