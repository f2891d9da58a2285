"""Exceptions raised by the request pipeline.

Each one maps to exactly one response shape; the handlers live in
``invite_request.main``.
"""
from __future__ import annotations


class ConfigurationError(Exception):
    """A required environment value is missing or malformed. Fatal at startup."""


class SignInRequired(Exception):
    """Raised by the route guard when no identity is stored in the session."""

    def __init__(self, path: str):
        super().__init__(f"Sign-in required for {path}")
        self.path = path


class RateLimitExceeded(Exception):
    def __init__(self, category: str, meta: dict):
        super().__init__(f"Rate limit exceeded for category '{category}'")
        self.category = category
        self.meta = meta


class RelocationError(Exception):
    """One or more uploads could not be moved into the public directory."""

    def __init__(self, message: str, *, field_name: str | None = None):
        super().__init__(message)
        self.field_name = field_name


__all__ = ["ConfigurationError", "SignInRequired", "RateLimitExceeded", "RelocationError"]
