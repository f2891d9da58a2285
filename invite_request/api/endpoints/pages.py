"""
Static-ish pages: landing, terms of service, thank-you.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from invite_request.api.deps import get_identity, require_identity
from invite_request.models.schemas.identity import Identity

router = APIRouter()


def render(request: Request, template: str, context: dict) -> HTMLResponse:
    return request.app.state.templates.TemplateResponse(request, template, context)


@router.get("/", response_class=HTMLResponse, summary="Landing page")
async def landing(
    request: Request,
    identity: Optional[Identity] = Depends(get_identity),
):
    return render(request, "main.html", request.app.state.strings.context("main", identity))


@router.get("/tos", response_class=HTMLResponse, summary="Terms of service")
async def terms_of_service(
    request: Request,
    identity: Optional[Identity] = Depends(get_identity),
):
    return render(request, "tos.html", request.app.state.strings.context("tos", identity))


@router.get("/thanks", response_class=HTMLResponse, summary="Post-submission thank-you page")
async def thanks(
    request: Request,
    identity: Identity = Depends(require_identity),
):
    return render(request, "thanks.html", request.app.state.strings.context("thanks", identity))
