from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List

import yaml


_ROOT = Path(__file__).resolve().parent.parent
_DEFAULT_CATEGORIES_PATH = _ROOT / "categories.yaml"

DEFAULT_CATEGORY = "community"
FALLBACK_LABEL = "general"


def _categories_path() -> Path:
    return Path(os.environ.get("CATEGORIES_PATH", str(_DEFAULT_CATEGORIES_PATH)))


def _read(path: Path | None) -> dict:
    categories_path = path or _categories_path()
    if not categories_path.exists():
        raise FileNotFoundError(f"categories.yaml not found: {categories_path}")

    with categories_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_categories(path: Path | None = None) -> List[dict]:
    categories = _read(path).get("categories") or []
    if not isinstance(categories, list):
        raise ValueError("categories.yaml: 'categories' must be a list")
    for item in categories:
        if not isinstance(item, dict) or not item.get("id"):
            raise ValueError("categories.yaml: every category needs an 'id'")
    return categories


def default_category(path: Path | None = None) -> str:
    return str(_read(path).get("default") or DEFAULT_CATEGORY)


def category_labels(path: Path | None = None) -> Dict[str, str]:
    return {str(c["id"]): str(c.get("name") or c["id"]) for c in load_categories(path)}


def category_label(source: str, labels: Dict[str, str]) -> str:
    # Unknown tags are legal and shown as-is.
    if not source:
        return FALLBACK_LABEL
    return labels.get(source, source)
