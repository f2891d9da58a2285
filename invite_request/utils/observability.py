"""Observability helpers (request IDs, client keys)."""
from __future__ import annotations
import uuid
from typing import Mapping, Optional

REQUEST_ID_HEADER = "X-Request-ID"


def ensure_request_id(headers: Mapping[str, str]) -> str:
    return headers.get(REQUEST_ID_HEADER, None) or str(uuid.uuid4())


def client_key(host: Optional[str]) -> str:
    """Rate-limit / log key for the peer address."""
    return host or "unknown"


__all__ = ["ensure_request_id", "client_key", "REQUEST_ID_HEADER"]
