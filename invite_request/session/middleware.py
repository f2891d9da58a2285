"""Cookie-token sessions backed by a ``SessionStore``.

The browser holds ``<token>.<signature>`` where the signature is an
HMAC-SHA256 of the token under ``SESSION_SECRET``. A missing, tampered or
unknown cookie yields an empty session. Empty sessions are never persisted, so
a visitor only gets a cookie once something is written (i.e. after sign-in).
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from typing import Any, Dict, Optional

from fastapi import Request, Response

from invite_request.utils.logger import get_logger

logger = get_logger(__name__)


def _signature(token: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), token.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def sign_token(token: str, secret: str) -> str:
    return f"{token}.{_signature(token, secret)}"


def unsign_token(value: Optional[str], secret: str) -> Optional[str]:
    if not value or "." not in value:
        return None
    token, _, signature = value.rpartition(".")
    if not token or not hmac.compare_digest(signature, _signature(token, secret)):
        return None
    return token


def new_token() -> str:
    return secrets.token_urlsafe(32)


class Session:
    """Mutable view of one visitor's session data."""

    def __init__(self, token: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        self.token = token
        self.data: Dict[str, Any] = dict(data or {})
        self.modified = False
        self._stale_token: Optional[str] = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self.data

    def __setitem__(self, key: str, value: Any) -> None:
        self.data[key] = value
        self.modified = True

    def pop(self, key: str, default: Any = None) -> Any:
        self.modified = self.modified or key in self.data
        return self.data.pop(key, default)

    def regenerate(self) -> None:
        """Move the data to a fresh token on the next save (sign-in)."""
        if self.token is not None:
            self._stale_token = self.token
        self.token = None
        self.modified = True


async def session_middleware(request: Request, call_next) -> Response:
    settings = request.app.state.settings
    store = request.app.state.session_store

    token = unsign_token(request.cookies.get(settings.session_cookie), settings.session_secret)
    data = await store.load(token) if token else None
    session = Session(token=token if data is not None else None, data=data)
    request.state.session = session

    response = await call_next(request)

    if not session.modified:
        return response

    if session._stale_token is not None:
        await store.delete(session._stale_token)

    if session.data:
        if session.token is None:
            session.token = new_token()
        await store.save(session.token, session.data, settings.session_ttl_seconds)
        response.set_cookie(
            settings.session_cookie,
            sign_token(session.token, settings.session_secret),
            max_age=settings.session_ttl_seconds,
            httponly=True,
            samesite="lax",
            secure=request.url.scheme == "https",
        )
    elif session.token is not None:
        await store.delete(session.token)
        response.delete_cookie(settings.session_cookie)
    return response


__all__ = ["Session", "session_middleware", "sign_token", "unsign_token", "new_token"]
