import json

from conftest import NOW_MS, BrokenKeyValueStore, MemoryKeyValueStore, SequentialIds
from yja_posts.main import app
from yja_posts.store import STORAGE_KEY, PostStore


def _use_store(provider=None, **kwargs) -> PostStore:
    store = PostStore(provider or MemoryKeyValueStore(), clock=lambda: NOW_MS, id_factory=SequentialIds(), **kwargs)
    app.state.store = store
    return store


def test_list_posts_returns_seed_posts(client):
    resp = client.get("/api/posts")
    assert resp.status_code == 200
    data = resp.json()
    assert [p["title"] for p in data] == ["YJA Pathshala Spotlight", "Community Service Recap"]
    assert set(data[0]) == {"id", "title", "link", "description", "image", "source", "createdAt"}


def test_list_posts_filters_by_query(client):
    resp = client.get("/api/posts", params={"q": "COMMUNITY"})
    assert [p["title"] for p in resp.json()] == ["Community Service Recap"]


def test_create_post_trims_and_prepends(client):
    store = _use_store()
    resp = client.post(
        "/api/posts",
        json={"title": "  Retreat  ", "link": "https://yja.org/retreat  ", "description": " Fun "},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body == {
        "id": "p_test3",
        "title": "Retreat",
        "link": "https://yja.org/retreat",
        "description": "Fun",
        "image": "",
        "source": "community",
        "createdAt": NOW_MS,
    }
    assert store.posts[0].id == "p_test3"


def test_create_post_truncates_long_title(client):
    _use_store()
    resp = client.post("/api/posts", json={"title": "t" * 200, "link": "https://yja.org"})
    assert len(resp.json()["title"]) == 120


def test_create_post_rejects_invalid_input(client):
    store = _use_store()
    resp = client.post("/api/posts", json={"title": "", "link": "ftp://x"})
    assert resp.status_code == 400
    assert resp.json() == {"detail": {"errors": ["Title is required", "Link must start with http(s)://"]}}
    assert len(store.posts) == 2


def test_create_post_persists_to_sqlite(client, tmp_path):
    client.post("/api/posts", json={"title": "Saved", "link": "https://yja.org", "source": "other"})
    resp = client.get("/api/posts")
    assert resp.json()[0]["title"] == "Saved"
    assert resp.json()[0]["source"] == "other"


def test_delete_post(client):
    store = _use_store()
    target = store.posts[0].id
    resp = client.delete(f"/api/posts/{target}")
    assert resp.status_code == 204
    assert [p.title for p in store.posts] == ["Community Service Recap"]


def test_delete_unknown_post_is_not_an_error(client):
    store = _use_store()
    resp = client.delete("/api/posts/p_missing")
    assert resp.status_code == 204
    assert len(store.posts) == 2


def test_write_failure_is_reported(client):
    _use_store(BrokenKeyValueStore(fail_writes=True))
    resp = client.post("/api/posts", json={"title": "A", "link": "https://yja.org"})
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Failed to save posts"}


def test_feed_renders_cards(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert "YJA Pathshala Spotlight" in resp.text
    assert 'href="https://www.yja.org/education"' in resp.text
    assert "confirm('Delete this post?')" in resp.text


def test_feed_escapes_and_sanitizes_user_content(client):
    store = _use_store()
    store.create(
        {
            "title": "<script>alert(1)</script>",
            "link": "javascript:alert(1)",
            "description": "",
            "image": "",
            "source": "",
        }
    )
    resp = client.get("/")
    assert "<script>alert(1)</script>" not in resp.text
    assert "&lt;script&gt;" in resp.text
    assert 'href="#"' in resp.text


def test_feed_shows_empty_state_for_unmatched_query(client):
    resp = client.get("/", params={"q": "nothing matches this"})
    assert "No posts yet" in resp.text


def test_admin_form_lists_categories(client):
    resp = client.get("/admin")
    assert resp.status_code == 200
    assert '<option value="community" selected>Community</option>' in resp.text
    assert 'maxlength="120"' in resp.text


def test_admin_create_redirects_to_feed(client):
    store = _use_store()
    resp = client.post(
        "/admin",
        data={"title": "Retreat", "link": "https://yja.org/retreat", "description": "", "source": "education"},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert resp.headers["location"] == "/"
    assert store.posts[0].title == "Retreat"
    assert store.posts[0].source == "education"


def test_admin_create_shows_joined_errors(client):
    store = _use_store()
    resp = client.post("/admin", data={"title": "", "link": "", "description": ""})
    assert resp.status_code == 400
    assert "Title is required · Link is required" in resp.text
    assert len(store.posts) == 2


def test_admin_create_stores_image_as_data_url(client):
    store = _use_store()
    resp = client.post(
        "/admin",
        data={"title": "Photo", "link": "https://yja.org"},
        files={"image": ("photo.png", b"\x89PNG", "image/png")},
        follow_redirects=False,
    )
    assert resp.status_code == 303
    assert store.posts[0].image == "data:image/png;base64,iVBORw=="


def test_admin_create_rejects_non_image_upload(client):
    store = _use_store()
    resp = client.post(
        "/admin",
        data={"title": "Doc", "link": "https://yja.org"},
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )
    assert resp.status_code == 400
    assert "Please choose an image file" in resp.text
    assert len(store.posts) == 2


def test_delete_form_redirects_to_feed(client):
    provider = MemoryKeyValueStore()
    store = _use_store(provider)
    target = store.posts[1].id
    resp = client.post(f"/posts/{target}/delete", follow_redirects=False)
    assert resp.status_code == 303
    assert [p.title for p in store.posts] == ["YJA Pathshala Spotlight"]
    assert [p["id"] for p in json.loads(provider.data[STORAGE_KEY])] == [store.posts[0].id]


def test_create_post_rejects_leading_space_in_link(client):
    store = _use_store()
    resp = client.post("/api/posts", json={"title": "Retreat", "link": " https://yja.org/retreat"})
    assert resp.status_code == 400
    assert resp.json() == {"detail": {"errors": ["Link must start with http(s)://"]}}
    assert len(store.posts) == 2


def _stored_post(**overrides):
    post = {
        "id": "p_saved",
        "title": "Saved",
        "link": "https://yja.org",
        "description": "",
        "image": "",
        "source": "other",
        "createdAt": NOW_MS,
    }
    post.update(overrides)
    return post


def test_feed_labels_empty_source_as_general(client):
    _use_store(MemoryKeyValueStore({STORAGE_KEY: json.dumps([_stored_post(source="")])}))
    resp = client.get("/")
    assert resp.status_code == 200
    assert '<span class="badge">general</span>' in resp.text


def test_feed_renders_out_of_range_timestamp(client):
    _use_store(MemoryKeyValueStore({STORAGE_KEY: json.dumps([_stored_post(createdAt=10**17)])}))
    resp = client.get("/")
    assert resp.status_code == 200
    assert "Invalid date" in resp.text
    assert "Saved" in resp.text


def test_feed_survives_surrogate_in_link(client):
    raw = '[{"id": "p_saved", "title": "Saved", "link": "http://example.com/\\ud800", "createdAt": 0}]'
    _use_store(MemoryKeyValueStore({STORAGE_KEY: raw}))
    resp = client.get("/")
    assert resp.status_code == 200
    assert 'href="#"' in resp.text


def test_delete_form_action_encodes_post_id(client):
    _use_store(MemoryKeyValueStore({STORAGE_KEY: json.dumps([_stored_post(id="p/a?b#c")])}))
    resp = client.get("/")
    assert 'action="/posts/p%2Fa%3Fb%23c/delete"' in resp.text


def test_delete_form_accepts_encoded_post_id(client):
    store = _use_store(MemoryKeyValueStore({STORAGE_KEY: json.dumps([_stored_post(id="p?b#c")])}))
    resp = client.post("/posts/p%3Fb%23c/delete", follow_redirects=False)
    assert resp.status_code == 303
    assert store.posts == []
