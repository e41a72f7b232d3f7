"""
Core building blocks of the Erply API client: configuration, errors,
the session key manager and the HTTP transport.
"""

__all__ = []
