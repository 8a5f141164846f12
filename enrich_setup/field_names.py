"""
Machine identifiers for enrichment fields.
"""

import re
from typing import Iterable

_WORD = re.compile(r"[A-Za-z0-9]+")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")

FALLBACK_NAME = "field"


def to_identifier(display_name: str) -> str:
    """
    Turn a display name into a lower camel case identifier.

    "Year Founded" -> "yearFounded", "CEO Name" -> "ceoName",
    "2024 revenue" -> "field2024Revenue", "" -> "field".
    """
    text = _CAMEL_BOUNDARY.sub(r"\1 \2", display_name or "")
    words = _WORD.findall(text)
    if not words:
        return FALLBACK_NAME

    identifier = words[0].lower() + "".join(w[:1].upper() + w[1:].lower() for w in words[1:])
    if identifier[0].isdigit():
        identifier = FALLBACK_NAME + identifier[:1].upper() + identifier[1:]
    return identifier


def generate_field_name(display_name: str, existing_names: Iterable[str]) -> str:
    """
    Collision-free identifier for `display_name`.

    Appends 2, 3, ... to the base identifier until it is not in
    `existing_names`. Needs at most len(existing_names) + 1 attempts.
    """
    existing = set(existing_names)
    base = to_identifier(display_name)
    if base not in existing:
        return base

    for suffix in range(2, len(existing) + 2):
        candidate = f"{base}{suffix}"
        if candidate not in existing:
            return candidate

    # Unreachable: len(existing) + 1 distinct candidates cannot all be taken
    raise RuntimeError(f"Could not generate a unique name for '{display_name}'")
