from .identity import GOOGLE_PERSON_KIND, EmailAddress, IdentityImage, Identity, SignInRequest
from .submission import COMMENTS_FIELD, UploadedFile, RelocatedFile, Submission
from .notification import AttachmentField, Attachment, NotificationMessage

__all__ = [
    # Identity
    "GOOGLE_PERSON_KIND",
    "EmailAddress",
    "IdentityImage",
    "Identity",
    "SignInRequest",

    # Application form
    "COMMENTS_FIELD",
    "UploadedFile",
    "RelocatedFile",
    "Submission",

    # Slack payload
    "AttachmentField",
    "Attachment",
    "NotificationMessage",
]
