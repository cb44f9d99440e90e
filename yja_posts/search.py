from __future__ import annotations

from typing import Optional, Sequence

from .models import Post

_SEARCH_FIELDS = ("title", "description", "source", "link")


def _matches(post: Post, needle: str) -> bool:
    for name in _SEARCH_FIELDS:
        value = getattr(post, name, None) or ""
        if needle in str(value).casefold():
            return True
    return False


def filter_posts(posts: Sequence[Post], query: Optional[str]) -> Sequence[Post]:
    needle = (query or "").strip().casefold()
    if not needle:
        return posts
    return [post for post in posts if _matches(post, needle)]
