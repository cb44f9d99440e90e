from __future__ import annotations

import argparse
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from yja_posts.database import SqliteKeyValueStore
from yja_posts.search import filter_posts
from yja_posts.store import PostStore


def run(store: PostStore, out_path: Path, query: Optional[str] = None) -> int:
    posts = filter_posts(store.posts, query)
    payload = {
        "exported_at": datetime.utcnow().isoformat(),
        "query": query or "",
        "count": len(posts),
        "posts": [post.to_dict() for post in posts],
    }

    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return len(posts)


def main() -> None:
    parser = argparse.ArgumentParser(description="Export stored posts to a JSON file.")
    parser.add_argument("--db", default=None, help="SQLite file (defaults to POSTS_DB_PATH)")
    parser.add_argument("--out", default="data/posts_export.json")
    parser.add_argument("--query", default="")
    args = parser.parse_args()

    provider = SqliteKeyValueStore(Path(args.db) if args.db else None)
    count = run(PostStore(provider), Path(args.out), args.query)
    print(f"saved {count} posts -> {args.out}")


if __name__ == "__main__":
    main()
