"""
Routers of the pass-through service.  ``calls`` forwards API calls and
``session`` exposes the cached session key.
"""

__all__ = [
    "calls",
    "session",
]

from . import calls, session  # noqa: E402,F401
