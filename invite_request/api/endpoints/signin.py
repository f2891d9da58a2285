"""
Sign-in endpoints.

The Google sign-in handshake happens entirely in the browser; the page then
posts the resulting profile here. The only server-side check is the profile's
``kind`` tag. Anyone able to post a well-formed ``plus#person`` payload gets a
session for that identity; the payload is not verified against Google.
"""
import json
from typing import Any, Optional
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from pydantic import ValidationError

from invite_request.api.deps import SESSION_USER_KEY, get_identity, get_session, rate_limit
from invite_request.api.endpoints.pages import render
from invite_request.models.schemas.identity import Identity, SignInRequest
from invite_request.session import Session
from invite_request.utils import get_logger, log_business_event
from invite_request.utils.forms import parse_nested_form

router = APIRouter()
logger = get_logger(__name__)


async def _read_body(request: Request) -> Any:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        raw = await request.body()
        if not raw:
            return {}
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            # Unreadable bodies are rejected like any other unrecognized payload.
            logger.warning("Sign-in body is not valid JSON", bytes=len(raw))
            return None
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return parse_nested_form(form.multi_items())
    return {}


@router.get("/signin", response_class=HTMLResponse, summary="Sign-in page")
async def signin_page(
    request: Request,
    identity: Optional[Identity] = Depends(get_identity),
):
    if identity is not None:
        return RedirectResponse("/apply", status_code=status.HTTP_302_FOUND)
    return render(request, "signin.html", request.app.state.strings.context("signin"))


@router.post(
    "/signin",
    summary="Store the client-side sign-in result in the session",
    dependencies=[Depends(rate_limit("signin"))],
)
async def signin(
    request: Request,
    session: Session = Depends(get_session),
):
    body = await _read_body(request)
    try:
        user = SignInRequest.model_validate(body).recognized_identity() if isinstance(body, dict) else None
    except ValidationError:
        user = None

    if user is None:
        logger.warning(
            "Sign-in rejected: unrecognized identity payload",
            request_id=getattr(request.state, "request_id", None),
        )
        return PlainTextResponse("Unauthorized", status_code=status.HTTP_401_UNAUTHORIZED)

    session.regenerate()
    session[SESSION_USER_KEY] = user
    display_name = user.get("displayName")
    logger.info(f'User "{display_name}" logged in')
    log_business_event(
        "user_signed_in",
        {"display_name": display_name},
        request_id=getattr(request.state, "request_id", None),
    )
    return PlainTextResponse("OK", status_code=status.HTTP_200_OK)
