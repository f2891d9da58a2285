"""
Server-side sessions: store backends and the cookie middleware.
"""
from .middleware import Session, session_middleware, sign_token, unsign_token
from .store import SessionStore, MemorySessionStore, RedisSessionStore, create_session_store

__all__ = [
    "Session",
    "session_middleware",
    "sign_token",
    "unsign_token",
    "SessionStore",
    "MemorySessionStore",
    "RedisSessionStore",
    "create_session_store",
]
