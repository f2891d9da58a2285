"""
Slack incoming-webhook payload schemas.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class AttachmentField(BaseModel):
    title: str
    value: str
    short: bool = True


class Attachment(BaseModel):
    fallback: str
    author_name: Optional[str] = None
    author_link: Optional[str] = None
    author_icon: Optional[str] = None
    color: Optional[str] = None
    pretext: Optional[str] = None
    text: Optional[str] = None
    fields: List[AttachmentField] = Field(default_factory=list)


class NotificationMessage(BaseModel):
    channel: Optional[str] = None
    username: str
    icon_url: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for the webhook. Unset optional keys are omitted."""
        return self.model_dump(mode="json", exclude_none=True)
