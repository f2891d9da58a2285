"""Field-name formatting helpers."""
from __future__ import annotations

import re

_LOWER_UPPER = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_ACRONYM_WORD = re.compile(r"(?<=[A-Z])(?=[A-Z][a-z])")
_LETTER_DIGIT = re.compile(r"(?<=[A-Za-z])(?=[0-9])|(?<=[0-9])(?=[A-Za-z])")
_SEPARATORS = re.compile(r"[\W_]+")


def title_case(name: str) -> str:
    """Turn a form field name into a display title.

    ``fullName`` -> ``Full Name``, ``github_handle`` -> ``Github Handle``,
    ``portfolioURL`` -> ``Portfolio Url``, ``address2`` -> ``Address 2``.
    """
    spaced = _LETTER_DIGIT.sub(" ", _ACRONYM_WORD.sub(" ", _LOWER_UPPER.sub(" ", name)))
    words = [w for w in _SEPARATORS.split(spaced) if w]
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


__all__ = ["title_case"]
