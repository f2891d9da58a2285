"""
Application form endpoints.

POST /apply flow:
    received -> files relocating -> redirect sent -> notifying -> notified | notify failed
    received -> files relocating -> relocation failed -> 500

Client-visible success depends only on relocation; the Slack notice runs as a
background task after the redirect has been sent.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from invite_request.api.deps import get_notifier, get_settings, rate_limit, require_identity
from invite_request.api.endpoints.pages import render
from invite_request.config import Settings
from invite_request.models.schemas.identity import Identity
from invite_request.models.schemas.submission import Submission
from invite_request.services.notification_formatter import build_notification
from invite_request.services.notifier import SlackNotifier
from invite_request.services.uploads import relocate_uploads
from invite_request.utils import get_logger, log_business_event

router = APIRouter()
logger = get_logger(__name__)


def request_origin(request: Request) -> str:
    host = request.headers.get("host") or request.url.netloc
    return f"{request.url.scheme}://{host}"


@router.get("/apply", response_class=HTMLResponse, summary="Application form")
async def apply_page(
    request: Request,
    identity: Identity = Depends(require_identity),
):
    strings = request.app.state.strings
    context = strings.context("apply", identity, form=strings.apply_form(identity))
    return render(request, "apply.html", context)


@router.post(
    "/apply",
    summary="Submit the application form",
    dependencies=[Depends(require_identity), Depends(rate_limit("apply"))],
)
async def submit_application(
    request: Request,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_identity),
    settings: Settings = Depends(get_settings),
    notifier: SlackNotifier = Depends(get_notifier),
):
    request_id = getattr(request.state, "request_id", None)
    form = await request.form()
    submission = Submission.from_form_items(form.multi_items())

    logger.info(
        f'Received application from "{identity.display_name} <{identity.primary_email}>"',
        fields=len(submission.fields),
        files=len(submission.uploads),
        request_id=request_id,
    )

    origin = request_origin(request)
    # RelocationError propagates to the handler in main (500).
    files = await relocate_uploads(
        submission.uploads,
        images_dir=settings.images_dir,
        origin=origin,
        timeout=settings.upload_move_timeout_seconds,
    )

    message = build_notification(identity, submission, files, settings=settings, origin=origin)
    background_tasks.add_task(notifier.send, message, request_id=request_id)

    log_business_event(
        "application_received",
        {
            "display_name": identity.display_name,
            "email": identity.primary_email,
            "fields": len(submission.display_fields),
            "files": [f.filename for f in files],
        },
        request_id=request_id,
    )
    return RedirectResponse("/thanks", status_code=status.HTTP_303_SEE_OTHER)
