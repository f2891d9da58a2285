"""Bracket-notation form decoding (``user[emails][0][value]=...``).

Browsers and jQuery serialise nested objects this way when posting
``application/x-www-form-urlencoded`` bodies.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, Tuple

_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_PART_RE = re.compile(r"\[([^\[\]]*)\]")


def _listify(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    node = {k: _listify(v) for k, v in node.items()}
    if node and all(k.isdigit() for k in node):
        return [node[k] for k in sorted(node, key=int)]
    return node


def parse_nested_form(items: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """Decode ``(key, value)`` pairs into nested dicts and lists.

    Numeric (or empty ``[]``) segments become list indexes. Keys without
    brackets are kept as-is; a later scalar overwrites an earlier one.
    """
    result: Dict[str, Any] = {}
    for key, value in items:
        match = _KEY_RE.match(key)
        if match is None:
            result[key] = value
            continue
        parts = [match.group(1)] + _PART_RE.findall(match.group(2))
        node = result
        for part in parts[:-1]:
            if part == "":
                part = str(len(node))
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        last = parts[-1] if parts[-1] != "" else str(len(node))
        node[last] = value
    return _listify(result)


__all__ = ["parse_nested_form"]
