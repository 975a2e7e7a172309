"""
StoreHub Backend: Slug Generation
==================================

What:  URL-safe identifiers derived from store names.
How:   `slugify("Café Olé!")` → "cafe-ole". When the base slug is taken, the
       number of existing slugs of the form `<base>` or `<base>-<n>` is
       counted and the new slug becomes `<base>-<count + 1>`, moving up until
       the candidate is free.
"""

import re
import unicodedata
from typing import Iterable

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase ASCII slug; empty when the name has no letters or digits."""
    normalized = unicodedata.normalize("NFKD", name)
    ascii_name = normalized.encode("ascii", "ignore").decode("ascii").lower()
    return _NON_ALNUM.sub("-", ascii_name).strip("-")


def slug_family_pattern(base: str) -> "re.Pattern[str]":
    """Matches `base` and its numbered variants (`base-2`, `base-17`)."""
    return re.compile(rf"^{re.escape(base)}(-\d+)?$")


def next_available_slug(base: str, existing: Iterable[str]) -> str:
    """
    Pick the slug for a new store named like `base`.

    Args:
        base:     Result of slugify(); must be non-empty.
        existing: Slugs already stored that start with `base`. Unrelated
                  slugs (`base-camp`) are ignored.
    """
    pattern = slug_family_pattern(base)
    taken = {slug for slug in existing if pattern.match(slug)}
    if base not in taken:
        return base

    suffix = len(taken) + 1
    candidate = f"{base}-{suffix}"
    while candidate in taken:
        suffix += 1
        candidate = f"{base}-{suffix}"
    return candidate
