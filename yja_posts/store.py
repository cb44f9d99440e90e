from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, List, Mapping, Optional, Protocol

from .categories import DEFAULT_CATEGORY
from .database import StorageError
from .ids import generate_id, now_ms
from .models import Post

logger = logging.getLogger(__name__)

STORAGE_KEY = "yja_posts_v1"
_DAY_MS = 1000 * 60 * 60 * 24


class KeyValueProvider(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


def seed_posts(now: int, id_factory: Callable[[], str] = generate_id) -> List[Post]:
    return [
        Post(
            id=id_factory(),
            title="YJA Pathshala Spotlight",
            link="https://www.yja.org/education",
            description="Learn about recent educational initiatives across regions.",
            image="",
            source="education",
            created_at=now - 3 * _DAY_MS,
        ),
        Post(
            id=id_factory(),
            title="Community Service Recap",
            link="https://www.yja.org/community",
            description="Highlights from the latest community drives and meetups.",
            image="",
            source="community",
            created_at=now - 7 * _DAY_MS,
        ),
    ]


def serialize_posts(posts: List[Post]) -> str:
    return json.dumps([post.to_dict() for post in posts], ensure_ascii=False)


def deserialize_posts(raw: str) -> List[Post]:
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("persisted posts must be a JSON array")
    return [Post.from_dict(item) for item in data]


class PostStore:
    """Newest-first collection of posts persisted under a single key.

    The in-memory list is the source of truth. Every mutation is followed by
    a full write of the collection; a failed write raises ``StorageError``
    but leaves the mutation in place.
    """

    def __init__(
        self,
        provider: KeyValueProvider,
        *,
        key: str = STORAGE_KEY,
        clock: Callable[[], int] = now_ms,
        id_factory: Callable[[], str] = generate_id,
    ) -> None:
        self._provider = provider
        self._key = key
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.Lock()
        self._posts: List[Post] = self.load()

    @property
    def posts(self) -> List[Post]:
        return list(self._posts)

    def load(self) -> List[Post]:
        try:
            raw = self._provider.get(self._key)
        except StorageError as exc:
            logger.warning("[posts_load_fallback] key=%s reason=%s", self._key, repr(exc))
            return seed_posts(self._clock(), self._id_factory)
        if raw is None:
            logger.info("[posts_load_fallback] key=%s reason=absent", self._key)
            return seed_posts(self._clock(), self._id_factory)
        try:
            posts = deserialize_posts(raw)
        except (ValueError, TypeError, OverflowError, RecursionError) as exc:
            logger.warning("[posts_load_fallback] key=%s reason=%s", self._key, repr(exc))
            return seed_posts(self._clock(), self._id_factory)
        logger.info("[posts_loaded] key=%s count=%s", self._key, len(posts))
        return posts

    def create(self, fields: Mapping[str, Any]) -> Post:
        """Prepend a post built from already-validated ``fields`` and persist."""
        with self._lock:
            post = Post(
                id=self._id_factory(),
                title=str(fields.get("title") or ""),
                link=str(fields.get("link") or ""),
                description=str(fields.get("description") or ""),
                image=str(fields.get("image") or ""),
                source=str(fields.get("source") or DEFAULT_CATEGORY),
                created_at=self._clock(),
            )
            self._posts = [post, *self._posts]
            logger.info("[post_created] id=%s source=%s", post.id, post.source)
            self._persist_locked()
        return post

    def delete(self, post_id: str) -> None:
        with self._lock:
            remaining = [post for post in self._posts if post.id != post_id]
            removed = len(self._posts) - len(remaining)
            self._posts = remaining
            logger.info("[post_deleted] id=%s removed=%s", post_id, removed)
            self._persist_locked()

    def persist(self) -> None:
        with self._lock:
            self._persist_locked()

    def _persist_locked(self) -> None:
        self._provider.set(self._key, serialize_posts(self._posts))
