from __future__ import annotations

import base64
import html
import logging
from datetime import datetime
from typing import Dict, List, Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from .categories import category_label, category_labels, default_category, load_categories
from .database import SqliteKeyValueStore, StorageError
from .links import sanitize_link
from .models import Post
from .search import filter_posts
from .store import PostStore
from .validation import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH, validate_post_input


app = FastAPI(title="YJA Posts")
logger = logging.getLogger(__name__)


class PostIn(BaseModel):
    title: str = ""
    link: str = ""
    description: str = ""
    image: str = ""
    source: Optional[str] = None


class PostOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    link: str
    description: str
    image: str
    source: str
    created_at: int = Field(alias="createdAt")


@app.on_event("startup")
def on_startup() -> None:
    provider = SqliteKeyValueStore()
    app.state.store = PostStore(provider)
    logger.info(
        "[posts_store_ready] path=%s count=%s",
        provider.path,
        len(app.state.store.posts),
    )


def get_store(request: Request) -> PostStore:
    return request.app.state.store


def _post_out(post: Post) -> PostOut:
    return PostOut(**post.to_dict())


def _clean_fields(title: str, link: str, description: str, image: str, source: Optional[str]) -> Dict[str, str]:
    return {
        "title": title.strip()[:TITLE_MAX_LENGTH],
        "link": link.strip(),
        "description": description.strip(),
        "image": image,
        "source": source or default_category(),
    }


def _create_or_fail(store: PostStore, fields: Dict[str, str]) -> Post:
    try:
        return store.create(fields)
    except StorageError as exc:
        logger.error("[posts_persist_failed] op=create error=%s", repr(exc))
        raise HTTPException(status_code=500, detail="Failed to save posts")


def _delete_or_fail(store: PostStore, post_id: str) -> None:
    try:
        store.delete(post_id)
    except StorageError as exc:
        logger.error("[posts_persist_failed] op=delete id=%s error=%s", post_id, repr(exc))
        raise HTTPException(status_code=500, detail="Failed to save posts")


@app.get("/api/posts", response_model=List[PostOut], response_model_by_alias=True)
def list_posts(q: str = "", store: PostStore = Depends(get_store)) -> List[PostOut]:
    return [_post_out(post) for post in filter_posts(store.posts, q)]


@app.post("/api/posts", response_model=PostOut, response_model_by_alias=True, status_code=201)
def create_post(payload: PostIn, store: PostStore = Depends(get_store)) -> PostOut:
    errors = validate_post_input(payload.model_dump())
    if errors:
        raise HTTPException(status_code=400, detail={"errors": errors})
    fields = _clean_fields(payload.title, payload.link, payload.description, payload.image, payload.source)
    return _post_out(_create_or_fail(store, fields))


@app.delete("/api/posts/{post_id}", status_code=204)
def delete_post(post_id: str, store: PostStore = Depends(get_store)) -> Response:
    _delete_or_fail(store, post_id)
    return Response(status_code=204)


@app.get("/", response_class=HTMLResponse)
def feed(q: str = "", store: PostStore = Depends(get_store)) -> str:
    labels = category_labels()
    posts = filter_posts(store.posts, q)
    cards = [_render_card(post, labels) for post in posts]
    body = f'<div class="grid">{"".join(cards)}</div>' if cards else _render_empty_state()
    content = f"""
      <div class="toolbar">
        <div class="toolbar__title">Latest posts</div>
        <form class="search" method="get" action="/">
          <input name="q" value="{html.escape(q)}" placeholder="Search…" />
          <a class="button" href="/admin">+ New post</a>
        </form>
      </div>
      {body}
    """
    return _render_page("YJA", "feed", content)


@app.get("/admin", response_class=HTMLResponse)
def admin() -> str:
    return _render_page("Manage content", "admin", _render_admin_form())


@app.post("/admin", response_class=HTMLResponse)
def admin_create(
    title: str = Form(""),
    link: str = Form(""),
    description: str = Form(""),
    source: str = Form(""),
    image: Optional[UploadFile] = File(None),
    store: PostStore = Depends(get_store),
):
    values = {"title": title, "link": link, "description": description, "source": source}
    errors = validate_post_input(values)
    image_data = ""
    if image is not None and image.filename:
        if not (image.content_type or "").startswith("image/"):
            errors.append("Please choose an image file")
        else:
            image_data = _to_data_url(image)
    if errors:
        content = _render_admin_form(values, error=" · ".join(errors))
        return HTMLResponse(_render_page("Manage content", "admin", content), status_code=400)

    post = _create_or_fail(store, _clean_fields(title, link, description, image_data, source))
    logger.info("[admin_post_created] id=%s has_image=%s", post.id, bool(image_data))
    return RedirectResponse(url="/", status_code=303)


@app.post("/posts/{post_id}/delete")
def delete_post_form(post_id: str, store: PostStore = Depends(get_store)) -> RedirectResponse:
    _delete_or_fail(store, post_id)
    return RedirectResponse(url="/", status_code=303)


def _to_data_url(upload: UploadFile) -> str:
    encoded = base64.b64encode(upload.file.read()).decode("ascii")
    return f"data:{upload.content_type};base64,{encoded}"


def _format_created_at(created_at: int) -> str:
    try:
        return datetime.fromtimestamp(created_at / 1000).strftime("%Y-%m-%d %H:%M")
    except (OverflowError, OSError, ValueError):
        return "Invalid date"


def _render_card(post: Post, labels: Dict[str, str]) -> str:
    label = html.escape(category_label(post.source, labels))
    badge_class = "badge badge--education" if post.source == "education" else "badge"
    if post.image:
        media_html = f'<div class="media"><img src="{html.escape(post.image)}" alt="Post image" /></div>'
    else:
        media_html = '<div class="media media--placeholder">No image</div>'
    return f"""
        <article class="card">
          {media_html}
          <div class="card__body">
            <div class="card__meta">
              <span class="{badge_class}">{label}</span>
              <span class="date">{_format_created_at(post.created_at)}</span>
            </div>
            <h3 class="title">{html.escape(post.title)}</h3>
            <p class="summary">{html.escape(post.description)}</p>
            <div class="card__actions">
              <a href="{html.escape(sanitize_link(post.link))}" target="_blank" rel="noreferrer noopener">Visit link ↗</a>
              <form method="post" action="/posts/{html.escape(quote(post.id, safe=""))}/delete"
                    onsubmit="return confirm('Delete this post?');">
                <button class="danger" type="submit" title="Delete">Delete</button>
              </form>
            </div>
          </div>
        </article>
    """


def _render_empty_state() -> str:
    return """
      <div class="empty">
        <div class="empty__title">No posts yet</div>
        <p>Create your first post to see it appear here.</p>
        <a class="button" href="/admin">New post</a>
      </div>
    """


def _render_admin_form(values: Optional[Dict[str, str]] = None, error: str = "") -> str:
    values = values or {}
    selected = values.get("source") or default_category()
    options = "".join(
        f'<option value="{html.escape(str(c["id"]))}"{" selected" if c["id"] == selected else ""}>'
        f'{html.escape(str(c.get("name") or c["id"]))}</option>'
        for c in load_categories()
    )
    description = values.get("description", "")
    error_html = f'<div class="error">{html.escape(error)}</div>' if error else ""
    return f"""
      <div class="panel">
        <h2>Create a new post</h2>
        {error_html}
        <form method="post" action="/admin" enctype="multipart/form-data">
          <label>Title *</label>
          <input name="title" value="{html.escape(values.get("title", ""))}"
                 placeholder="Enter title" maxlength="{TITLE_MAX_LENGTH}" required />
          <label>Link to content *</label>
          <input name="link" value="{html.escape(values.get("link", ""))}" placeholder="https://…" required />
          <label>Description</label>
          <textarea name="description" placeholder="One or two sentences."
                    maxlength="{DESCRIPTION_MAX_LENGTH}">{html.escape(description)}</textarea>
          <div class="counter">{len(description)}/{DESCRIPTION_MAX_LENGTH}</div>
          <label>Source</label>
          <select name="source">{options}</select>
          <label>Upload image (optional)</label>
          <input type="file" name="image" accept="image/*" />
          <div class="actions">
            <button type="submit">Create post</button>
            <button type="reset" class="secondary">Reset</button>
          </div>
        </form>
      </div>
      <details class="panel notes">
        <summary>Notes</summary>
        <ul>
          <li>Posts are stored in a local SQLite key-value table and persist between restarts.</li>
          <li>Image uploads are kept as data URLs (base64) for simplicity.</li>
        </ul>
      </details>
    """


def _render_page(title: str, active: str, content: str) -> str:
    feed_class = ' class="active"' if active == "feed" else ""
    admin_class = ' class="active"' if active == "admin" else ""
    return f"""
    <html>
      <head>
        <title>{html.escape(title)}</title>
        <style>
          { _inline_shared_styles() }
        </style>
      </head>
      <body>
        <div class="topbar">
          <div class="logo">Y</div>
          <ul class="menu">
            <li{feed_class}><a href="/">View content</a></li>
            <li{admin_class}><a href="/admin">Manage content</a></li>
          </ul>
        </div>
        <div class="container">
          {content}
        </div>
      </body>
    </html>
    """


def _inline_shared_styles() -> str:
    return """
          :root {
            --bg: #f9fafb;
            --card: #ffffff;
            --text: #111827;
            --muted: #6b7280;
            --border: #e5e7eb;
            --accent: #4f46e5;
            --accent-soft: #eef2ff;
            --danger: #dc2626;
          }
          * { box-sizing: border-box; }
          body {
            margin: 0;
            font-family: "Inter", "Segoe UI", sans-serif;
            color: var(--text);
            background: var(--bg);
          }
          .topbar {
            background: #ffffff;
            border-bottom: 1px solid var(--border);
            padding: 12px 24px;
            display: flex;
            align-items: center;
            justify-content: space-between;
          }
          .logo {
            width: 32px;
            height: 32px;
            border-radius: 10px;
            background: var(--accent);
            color: #ffffff;
            display: grid;
            place-items: center;
            font-weight: 700;
          }
          .menu {
            display: flex;
            gap: 8px;
            list-style: none;
            margin: 0;
            padding: 0;
            font-weight: 600;
          }
          .menu li {
            padding: 6px 12px;
            border-radius: 999px;
            color: var(--muted);
          }
          .menu li.active {
            color: #ffffff;
            background: var(--accent);
          }
          .menu a {
            color: inherit;
            text-decoration: none;
          }
          .container {
            max-width: 1024px;
            margin: 24px auto 64px;
            padding: 0 24px;
          }
          .toolbar {
            display: flex;
            align-items: center;
            justify-content: space-between;
            margin-bottom: 16px;
          }
          .toolbar__title {
            font-size: 18px;
            font-weight: 600;
          }
          .search {
            display: flex;
            gap: 8px;
          }
          input, textarea, select {
            width: 100%;
            padding: 8px 12px;
            border-radius: 6px;
            border: 1px solid #d1d5db;
            font: inherit;
          }
          textarea { height: 112px; }
          .button, button {
            display: inline-flex;
            align-items: center;
            padding: 8px 12px;
            border-radius: 6px;
            border: 0;
            background: var(--accent);
            color: #ffffff;
            text-decoration: none;
            white-space: nowrap;
            cursor: pointer;
          }
          button.secondary {
            background: #ffffff;
            color: var(--text);
            border: 1px solid #d1d5db;
          }
          button.danger {
            background: none;
            color: var(--danger);
            padding: 0;
          }
          .grid {
            display: grid;
            grid-template-columns: repeat(3, minmax(0, 1fr));
            gap: 16px;
          }
          .card {
            background: var(--card);
            border: 1px solid var(--border);
            border-radius: 16px;
            overflow: hidden;
            display: flex;
            flex-direction: column;
          }
          .card__body {
            padding: 16px;
            display: flex;
            flex-direction: column;
            flex: 1;
          }
          .card__meta, .card__actions {
            display: flex;
            align-items: center;
            justify-content: space-between;
            gap: 8px;
          }
          .card__actions {
            margin-top: auto;
          }
          .card__actions a {
            color: var(--accent);
            font-weight: 500;
            text-decoration: none;
          }
          .badge {
            text-transform: uppercase;
            font-size: 12px;
            letter-spacing: 0.05em;
            padding: 4px 8px;
            border-radius: 999px;
            background: var(--accent-soft);
            color: var(--accent);
          }
          .badge--education {
            background: #ecfdf5;
            color: #047857;
          }
          .date {
            font-size: 12px;
            color: var(--muted);
          }
          .title {
            margin: 8px 0 4px;
            font-size: 18px;
          }
          .summary {
            margin: 0 0 12px;
            color: #374151;
            font-size: 14px;
          }
          .media img {
            width: 100%;
            aspect-ratio: 16 / 9;
            object-fit: cover;
            display: block;
          }
          .media--placeholder {
            aspect-ratio: 16 / 9;
            background: #f3f4f6;
            color: #9ca3af;
            font-size: 14px;
            display: grid;
            place-items: center;
          }
          .empty, .panel {
            background: var(--card);
            border: 1px solid var(--border);
            border-radius: 16px;
            padding: 24px;
          }
          .empty {
            text-align: center;
          }
          .empty__title {
            font-weight: 600;
          }
          .panel {
            max-width: 720px;
            margin: 0 auto 24px;
          }
          .panel label {
            display: block;
            margin: 12px 0 4px;
            font-size: 14px;
            font-weight: 500;
          }
          .counter {
            text-align: right;
            font-size: 12px;
            color: var(--muted);
          }
          .error {
            margin-bottom: 12px;
            padding: 8px 12px;
            border-radius: 6px;
            border: 1px solid #fecaca;
            background: #fef2f2;
            color: #b91c1c;
            font-size: 14px;
          }
          .actions {
            display: flex;
            gap: 8px;
            padding-top: 16px;
          }
          .notes {
            color: var(--muted);
            font-size: 14px;
          }
          @media (max-width: 1024px) {
            .grid {
              grid-template-columns: repeat(2, minmax(0, 1fr));
            }
          }
          @media (max-width: 640px) {
            .grid {
              grid-template-columns: 1fr;
            }
          }
    """
