"""
Schemas for an application form post and the files it carried.
"""
from pathlib import Path
from typing import Any, BinaryIO, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

COMMENTS_FIELD = "comments"


class UploadedFile(BaseModel):
    """One named file upload, still in its temporary location."""
    field_name: str
    filename: str
    file: Any = Field(exclude=True, repr=False)  # readable binary file object
    size: Optional[int] = None
    content_type: Optional[str] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @property
    def stream(self) -> BinaryIO:
        return self.file


class RelocatedFile(BaseModel):
    field_name: str
    filename: str
    destination: Path
    uri: str


class Submission(BaseModel):
    """A parsed form post.

    ``fields`` keeps the text fields as ordered ``(name, value)`` pairs, exactly
    in the order the browser sent them. ``uploads`` keeps upload order.
    """
    fields: List[Tuple[str, str]] = Field(default_factory=list)
    uploads: List[UploadedFile] = Field(default_factory=list)

    @property
    def comments(self) -> Optional[str]:
        for name, value in self.fields:
            if name == COMMENTS_FIELD:
                return value or None
        return None

    @property
    def display_fields(self) -> List[Tuple[str, str]]:
        return [(name, value) for name, value in self.fields if name != COMMENTS_FIELD]

    @classmethod
    def from_form_items(cls, items) -> "Submission":
        """Build from ``FormData.multi_items()``: strings are fields, everything with a ``filename`` is an upload.

        Empty file inputs (no filename) are dropped.
        """
        fields: List[Tuple[str, str]] = []
        uploads: List[UploadedFile] = []
        for name, value in items:
            if isinstance(value, str):
                fields.append((name, value))
                continue
            filename = getattr(value, "filename", None)
            if not filename:
                continue
            uploads.append(UploadedFile(
                field_name=name,
                filename=filename,
                file=value.file,
                size=getattr(value, "size", None),
                content_type=getattr(value, "content_type", None),
            ))
        return cls(fields=fields, uploads=uploads)
