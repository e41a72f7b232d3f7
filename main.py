"""
Root entry point for the Erply pass-through service
==================================================

Exposes the FastAPI application defined in ``erply_client/main.py`` so
that Uvicorn can import ``main:app`` from the repository root.

.. code-block:: bash

    ERPLY_URL=https://123456.erply.com/api ERPLY_CLIENT_CODE=123456 \
    ERPLY_USERNAME=api-user ERPLY_PASSWORD=secret \
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

from erply_client.main import app  # noqa: F401 re-export for Uvicorn

__all__ = ["app"]
