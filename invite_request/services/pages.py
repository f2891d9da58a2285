"""Page copy and template context assembly.

Copy lives in ``strings.yml`` next to this package. Every page gets the site
title and the analytics token; the sign-in page also gets the OAuth client id.
"""
from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from invite_request.config import PACKAGE_DIR, Settings
from invite_request.models.schemas.identity import Identity

DEFAULT_STRINGS_PATH = PACKAGE_DIR / "strings.yml"


def load_strings(path: Path = DEFAULT_STRINGS_PATH) -> Dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return data


class PageStrings:
    def __init__(self, strings: Dict[str, Any], settings: Settings):
        self._strings = strings
        self._settings = settings

    @property
    def title(self) -> str:
        return str(self._strings.get("title", ""))

    def section(self, name: str) -> Dict[str, Any]:
        # Deep copy: handlers fill in per-visitor values (form pre-fill).
        return copy.deepcopy(self._strings.get(name) or {})

    def context(self, name: str, identity: Optional[Identity] = None, **extra: Any) -> Dict[str, Any]:
        ctx: Dict[str, Any] = {
            "title": self.title,
            "ga_token": self._settings.ga_token,
            "page": self.section(name),
            "user": identity.template_context() if identity is not None else None,
        }
        if name == "signin":
            ctx["client_id"] = self._settings.google_client_id
        ctx.update(extra)
        return ctx

    def apply_form(self, identity: Identity) -> Dict[str, Any]:
        """Apply-form field definitions pre-filled from the identity."""
        form = self.section("apply").get("form") or {}
        if "fullName" in form:
            form["fullName"]["value"] = identity.display_name
        if "email" in form:
            form["email"]["value"] = identity.primary_email or ""
        return form


__all__ = ["PageStrings", "load_strings", "DEFAULT_STRINGS_PATH"]
