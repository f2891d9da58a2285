"""Upload relocation into the public images directory.

Each upload is written to ``<images_dir>/<field>-<filename>`` and becomes
reachable at ``<origin>/images/<field>-<filename>``. Writes land in a hidden
temporary sibling first and are swapped in with ``os.replace``, so relocating
the same field + filename again overwrites the previous file instead of
accumulating copies.

All uploads of one submission are copied concurrently (one worker thread each)
and joined before returning. If any copy fails or the whole set exceeds the
timeout, ``RelocationError`` is raised. Files that already landed stay where
they are.
"""
from __future__ import annotations

import asyncio
import os
import posixpath
import secrets
import shutil
import time
from pathlib import Path
from typing import BinaryIO, List, Sequence
from urllib.parse import quote

from invite_request.exceptions import RelocationError
from invite_request.models.schemas.submission import RelocatedFile, UploadedFile
from invite_request.utils import get_logger, log_performance

logger = get_logger(__name__)

PUBLIC_IMAGES_PATH = "/images"
_FORBIDDEN_FIELD_CHARS = ("/", "\\", "\x00")


def public_filename(field_name: str, filename: str) -> str:
    """``<field>-<basename>``; any client-supplied directory part is dropped.

    The field name is client-supplied too and must be a single path segment.
    """
    if not field_name or field_name in (".", "..") or any(c in field_name for c in _FORBIDDEN_FIELD_CHARS):
        raise RelocationError(f"Unusable upload field name {field_name!r}", field_name=field_name)
    base = posixpath.basename(filename.replace("\\", "/"))
    if base in ("", ".", ".."):
        raise RelocationError(f"Unusable upload filename {filename!r}", field_name=field_name)
    return f"{field_name}-{base}"


def public_uri(origin: str, filename: str) -> str:
    return f"{origin.rstrip('/')}{PUBLIC_IMAGES_PATH}/{quote(filename)}"


def _copy_into_place(stream: BinaryIO, destination: Path) -> None:
    tmp = destination.with_name(f".{destination.name}.{secrets.token_hex(4)}.part")
    try:
        stream.seek(0)
        with open(tmp, "wb") as out:
            shutil.copyfileobj(stream, out)
        os.replace(tmp, destination)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


async def _relocate_one(upload: UploadedFile, images_dir: Path, origin: str) -> RelocatedFile:
    filename = public_filename(upload.field_name, upload.filename)
    destination = images_dir / filename
    if destination.resolve().parent != images_dir.resolve():
        raise RelocationError(f"Upload {filename!r} resolves outside {images_dir}", field_name=upload.field_name)
    await asyncio.to_thread(_copy_into_place, upload.stream, destination)
    return RelocatedFile(
        field_name=upload.field_name,
        filename=filename,
        destination=destination,
        uri=public_uri(origin, filename),
    )


async def relocate_uploads(
    uploads: Sequence[UploadedFile],
    *,
    images_dir: Path,
    origin: str,
    timeout: float,
) -> List[RelocatedFile]:
    """Move every upload into ``images_dir``; results keep upload order.

    Raises:
        RelocationError: any single move failed or the set timed out.
    """
    if not uploads:
        return []

    start = time.perf_counter()
    try:
        images_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RelocationError(f"Cannot create images directory {images_dir}: {e}") from e

    jobs = [_relocate_one(u, images_dir, origin) for u in uploads]
    try:
        results = await asyncio.wait_for(asyncio.gather(*jobs, return_exceptions=True), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error("Upload relocation timed out", timeout_seconds=timeout, files=len(uploads))
        raise RelocationError(f"Relocating {len(uploads)} upload(s) exceeded {timeout}s") from e

    relocated: List[RelocatedFile] = []
    failures = []
    for upload, result in zip(uploads, results):
        if isinstance(result, BaseException):
            failures.append((upload, result))
        else:
            relocated.append(result)

    if failures:
        for upload, exc in failures:
            logger.error(
                "Upload relocation failed",
                field_name=upload.field_name,
                filename=upload.filename,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        upload, exc = failures[0]
        if isinstance(exc, RelocationError):
            raise exc
        raise RelocationError(
            f"Failed to relocate upload '{upload.field_name}': {exc}",
            field_name=upload.field_name,
        ) from exc

    log_performance(
        "relocate_uploads",
        round((time.perf_counter() - start) * 1000, 2),
        {"files": len(relocated), "bytes": sum(u.size or 0 for u in uploads)},
    )
    return relocated


__all__ = ["relocate_uploads", "public_filename", "public_uri", "PUBLIC_IMAGES_PATH"]
