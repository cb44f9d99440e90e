from __future__ import annotations

import re
from typing import Any, List, Mapping

TITLE_MAX_LENGTH = 120
DESCRIPTION_MAX_LENGTH = 500

_LINK_SCHEME = re.compile(r"^https?://", re.IGNORECASE)


def validate_post_input(candidate: Mapping[str, Any]) -> List[str]:
    """Collect every error for a candidate post; an empty list means valid.

    Only title, link and description are checked. ``source`` is accepted as
    any string.
    """
    title = candidate.get("title") or ""
    link = candidate.get("link") or ""
    description = candidate.get("description") or ""

    errors: List[str] = []
    if not title.strip():
        errors.append("Title is required")
    if not link.strip():
        errors.append("Link is required")
    # A whitespace-only link fails both link rules.
    if link and not _LINK_SCHEME.match(link):
        errors.append("Link must start with http(s)://")
    if len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append(f"Description must be ≤ {DESCRIPTION_MAX_LENGTH} chars")
    return errors
