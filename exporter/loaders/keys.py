"""
Deterministic, filesystem-safe identifiers for archive entities
"""

import re
from typing import Any, Mapping, Tuple

from core.exceptions import ArchiveError

CATEGORY_PREFIX = "category"
SECTION_PREFIX = "section"

_NON_WORD = re.compile(r"[^A-Za-z0-9]+")


def normalize(value: str) -> str:
    """Collapse every run of non-alphanumerics to "_" and lowercase.

    No collision detection: "Tacos!" and "Tacos?" map to the same id.
    """
    return _NON_WORD.sub("_", value).lower()


def category_id(fields: Mapping[str, Any]) -> str:
    return normalize(fields["name"])


def section_id(fields: Mapping[str, Any]) -> str:
    return normalize(fields["title"])


def category_key(fields: Mapping[str, Any]) -> str:
    return f"{CATEGORY_PREFIX}:{category_id(fields)}"


def section_key(fields: Mapping[str, Any]) -> str:
    return f"{SECTION_PREFIX}:{section_id(fields)}"


def user_filename(email: str) -> str:
    return normalize(email)


def split_key(key: str) -> Tuple[str, str]:
    """
    Split a parent key into its prefix and id.

    Raises:
        ArchiveError: If the key has no known prefix or an empty id
    """
    prefix, sep, entity_id = key.partition(":")
    if not sep or not entity_id or prefix not in (CATEGORY_PREFIX, SECTION_PREFIX):
        raise ArchiveError(f"Malformed parent key: {key!r}", context={"key": key})
    return prefix, entity_id
