"""
Pydantic schemas for the signed-in identity.

The identity payload is produced by the client-side Google+ sign-in script and
posted as-is; the server only checks the ``kind`` tag. The raw dict is what
goes into the session, these models are the typed view used when reading it
back.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict, ValidationError

GOOGLE_PERSON_KIND = "plus#person"


class EmailAddress(BaseModel):
    value: str
    type: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class IdentityImage(BaseModel):
    url: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class Identity(BaseModel):
    kind: str
    display_name: str = Field(default="", alias="displayName")
    emails: List[EmailAddress] = Field(default_factory=list)
    url: Optional[str] = None
    image: Optional[IdentityImage] = None

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "kind": "plus#person",
                "displayName": "Jane Doe",
                "emails": [{"value": "jane@example.com", "type": "account"}],
                "url": "https://plus.google.com/123",
                "image": {"url": "https://lh3.googleusercontent.com/photo.jpg"},
            }
        },
    )

    @property
    def is_google_person(self) -> bool:
        return self.kind == GOOGLE_PERSON_KIND

    @property
    def primary_email(self) -> Optional[str]:
        return self.emails[0].value if self.emails else None

    @property
    def image_url(self) -> Optional[str]:
        return self.image.url if self.image is not None else None

    def template_context(self) -> Dict[str, Any]:
        """Values exposed to page templates for personalisation."""
        return {
            "display_name": self.display_name,
            "email": self.primary_email,
            "profile_url": self.url,
            "image_url": self.image_url,
        }


class SignInRequest(BaseModel):
    """Body of ``POST /signin``. ``user`` stays untyped so it can be stored verbatim."""
    user: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")

    def recognized_identity(self) -> Optional[Dict[str, Any]]:
        """The raw ``user`` dict when it is a Google person that reads back as an ``Identity``."""
        if not self.user:
            return None
        try:
            identity = Identity.model_validate(self.user)
        except ValidationError:
            return None
        return self.user if identity.is_google_person else None
