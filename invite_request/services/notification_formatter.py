"""Turn an application submission into a Slack webhook message.

Layout (one attachment):
 - author: the signed-in identity (name, profile link, avatar)
 - text: the ``comments`` field in double quotes, omitted when empty
 - fields: every other text field in submission order, titled with
   ``title_case(name)``, then one ``<uri|View>`` link per relocated file in
   upload order, titled with the raw field name

Pure function of its inputs: same submission, files and settings give the same
payload.
"""
from __future__ import annotations

from typing import Sequence

from invite_request.config import Settings
from invite_request.models.schemas.identity import Identity
from invite_request.models.schemas.notification import Attachment, AttachmentField, NotificationMessage
from invite_request.models.schemas.submission import RelocatedFile, Submission
from invite_request.utils.text import title_case

ATTACHMENT_COLOR = "#28f428"
PRETEXT = "New invite request:"
BOT_ICON_PATH = "/images/bot.png"


def file_link(uri: str) -> str:
    return f"<{uri}|View>"


def build_fields(submission: Submission, files: Sequence[RelocatedFile]) -> list[AttachmentField]:
    fields = [
        AttachmentField(title=title_case(name), value=value, short=True)
        for name, value in submission.display_fields
    ]
    fields.extend(
        AttachmentField(title=f.field_name, value=file_link(f.uri), short=True)
        for f in files
    )
    return fields


def build_notification(
    identity: Identity,
    submission: Submission,
    files: Sequence[RelocatedFile],
    *,
    settings: Settings,
    origin: str,
) -> NotificationMessage:
    comments = submission.comments
    attachment = Attachment(
        fallback=f"{identity.display_name} wants to join Slack",
        author_name=identity.display_name,
        author_link=identity.url,
        author_icon=identity.image_url,
        color=ATTACHMENT_COLOR,
        pretext=PRETEXT,
        text=f'"{comments}"' if comments else None,
        fields=build_fields(submission, files),
    )
    return NotificationMessage(
        channel=settings.slack_channel,
        username=settings.slack_bot_name,
        icon_url=f"{origin.rstrip('/')}{BOT_ICON_PATH}",
        attachments=[attachment],
    )


__all__ = ["build_notification", "build_fields", "file_link"]
