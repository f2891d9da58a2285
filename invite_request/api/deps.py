"""
Dependencies for session identity, route guarding and rate limiting.
"""
from typing import Optional
from fastapi import Depends, Request
from pydantic import ValidationError

from invite_request.config import Settings
from invite_request.exceptions import RateLimitExceeded, SignInRequired
from invite_request.models.schemas.identity import Identity
from invite_request.services.notifier import SlackNotifier
from invite_request.session import Session
from invite_request.utils import get_logger
from invite_request.utils.observability import client_key

logger = get_logger(__name__)

SESSION_USER_KEY = "user"


async def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_notifier(request: Request) -> SlackNotifier:
    return request.app.state.notifier


async def get_session(request: Request) -> Session:
    """
    Session attached by ``session_middleware``.
    Falls back to an empty, throwaway session if the middleware did not run.
    """
    session = getattr(request.state, "session", None)
    if session is None:
        session = Session()
        request.state.session = session
    return session


async def get_identity(session: Session = Depends(get_session)) -> Optional[Identity]:
    """
    Identity stored in the session, or None when nobody is signed in.

    Read-only. A stored payload that no longer parses is treated as signed out.
    """
    raw = session.get(SESSION_USER_KEY)
    if not isinstance(raw, dict):
        return None
    try:
        return Identity.model_validate(raw)
    except ValidationError as e:
        logger.warning("Ignoring malformed identity in session", errors=e.error_count())
        return None


async def require_identity(
    request: Request,
    identity: Optional[Identity] = Depends(get_identity),
) -> Identity:
    """
    Route guard for pages that need a signed-in visitor.

    Raises:
        SignInRequired: handled in main by redirecting to /signin
    """
    if identity is None:
        logger.info(
            "Access denied: no identity in session",
            path=request.url.path,
            remote_addr=client_key(request.client.host if request.client else None),
        )
        raise SignInRequired(request.url.path)
    return identity


def rate_limit(category: str):
    """
    Factory creating a dependency that counts one hit against ``category``
    for the calling client and rejects the request once the window is full.

    Args:
        category: Counter namespace, e.g. "signin" or "apply"
    """
    async def rate_limit_dependency(
        request: Request,
        settings: Settings = Depends(get_settings),
    ) -> dict:
        limiter = request.app.state.rate_limiter
        key = client_key(request.client.host if request.client else None)
        allowed, meta = await limiter.check_and_increment(
            key,
            category,
            settings.rate_limit_max,
            settings.rate_limit_window_seconds,
        )
        if not allowed:
            logger.warning(
                "Rate limit exceeded",
                category=category,
                remote_addr=key,
                count=meta.get("count"),
                limit=meta.get("limit"),
                degraded=meta.get("degraded"),
            )
            raise RateLimitExceeded(category, meta)
        return meta

    return rate_limit_dependency
