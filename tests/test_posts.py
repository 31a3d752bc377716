"""Tests for the posts blueprint: listing, search, CRUD over HTML and JSON."""

from tagboard.models import Post, PostTag, Tag
from tests.conftest import _make_post, _make_tag, _tag_names

JSON = {"Accept": "application/json"}

# ── Index & search ─────────────────────────────────────────────────


def test_root_redirects_to_posts(client):
    rv = client.get("/", follow_redirects=False)
    assert rv.status_code == 302
    assert rv.headers["Location"].endswith("/posts")


def test_index_lists_posts(client, db):
    _make_post(title="First Post")
    _make_post(title="Second Post")
    rv = client.get("/posts")
    assert rv.status_code == 200
    assert b"First Post" in rv.data
    assert b"Second Post" in rv.data


def test_index_without_posts(client):
    rv = client.get("/posts")
    assert rv.status_code == 200
    assert b"No posts yet." in rv.data


def test_index_json(client, db):
    _make_post(title="Json Post", tags=[_make_tag("Ruby")])
    rv = client.get("/posts", headers=JSON)
    assert rv.status_code == 200
    assert rv.content_type.startswith("application/json")
    data = rv.get_json()
    assert data["count"] == 1
    assert data["posts"][0]["title"] == "Json Post"
    assert data["posts"][0]["tags"] == ["Ruby"]
    assert data["tags"] == ["Ruby"]


def _seed_search_posts():
    ruby, js = _make_tag("Ruby"), _make_tag("JavaScript")
    _make_post(title="Ruby on Rails", description="Web framework.", tags=[ruby])
    _make_post(title="JavaScript Guide", description="Works well with Rails.", tags=[js])
    _make_post(title="Python Tutorial", description="Learn Python.")


def test_search_by_keyword(client, db):
    _seed_search_posts()
    rv = client.get("/posts?q=Rails")
    assert rv.status_code == 200
    assert b"Ruby on Rails" in rv.data
    assert b"JavaScript Guide" in rv.data
    assert b"Python Tutorial" not in rv.data
    assert b"2 posts" in rv.data


def test_search_is_case_insensitive(client, db):
    _seed_search_posts()
    rv = client.get("/posts?q=rails")
    assert b"Ruby on Rails" in rv.data
    assert b"JavaScript Guide" in rv.data


def test_search_without_match_shows_message(client, db):
    _seed_search_posts()
    rv = client.get("/posts?q=NonExistent")
    assert rv.status_code == 200
    assert b"No posts matched your search." in rv.data


def test_search_by_tag(client, db):
    _seed_search_posts()
    rv = client.get("/posts", query_string={"q": "", "tag": "Ruby"}, headers=JSON)
    data = rv.get_json()
    assert [p["title"] for p in data["posts"]] == ["Ruby on Rails"]
    assert data["tag"] == "Ruby"


def test_search_by_keyword_and_tag(client, db):
    _seed_search_posts()
    rv = client.get("/posts", query_string={"q": "Rails", "tag": "JavaScript"}, headers=JSON)
    data = rv.get_json()
    assert [p["title"] for p in data["posts"]] == ["JavaScript Guide"]
    assert data["count"] == 1
    assert data["q"] == "Rails"


def test_blank_tag_param_is_no_restriction(client, db):
    _seed_search_posts()
    rv = client.get("/posts", query_string={"tag": "  "}, headers=JSON)
    assert rv.get_json()["count"] == 3


def test_tag_select_lists_all_tags(client, db):
    _seed_search_posts()
    _make_tag("Zzz")
    rv = client.get("/posts?q=Python")
    assert b'<option value="Zzz">Zzz</option>' in rv.data
    assert b'<option value="Ruby">Ruby</option>' in rv.data


# ── Show ───────────────────────────────────────────────────────────


def test_show_post(client, db):
    post = _make_post(title="Detail Post", description="Detail body", tags=[_make_tag("Ruby")])
    rv = client.get(f"/posts/{post.id}")
    assert rv.status_code == 200
    assert b"Detail Post" in rv.data
    assert b"Detail body" in rv.data
    assert b"Ruby" in rv.data


def test_show_post_json(client, db):
    post = _make_post(title="Json Detail")
    rv = client.get(f"/posts/{post.id}", headers=JSON)
    assert rv.status_code == 200
    assert rv.get_json()["title"] == "Json Detail"


def test_show_missing_post_returns_404(client):
    assert client.get("/posts/99999").status_code == 404


def test_show_missing_post_json_404(client):
    rv = client.get("/posts/99999", headers=JSON)
    assert rv.status_code == 404
    assert rv.get_json() == {"error": "Not Found"}


def test_non_numeric_id_returns_404(client):
    assert client.get("/posts/1%20OR%201=1").status_code == 404


def test_show_escapes_html(client, db):
    post = _make_post(title="<script>alert('xss')</script>")
    rv = client.get(f"/posts/{post.id}")
    assert b"<script>alert" not in rv.data
    assert b"&lt;script&gt;" in rv.data


# ── Create ─────────────────────────────────────────────────────────


def test_new_post_form(client):
    rv = client.get("/posts/new")
    assert rv.status_code == 200
    assert b'name="tag_names"' in rv.data


def test_create_post(client, db):
    rv = client.post(
        "/posts",
        data={"title": "Created", "description": "Body", "tag_names": "Ruby, Rails"},
        follow_redirects=False,
    )
    assert rv.status_code == 302
    post = Post.query.filter_by(title="Created").one()
    assert rv.headers["Location"].endswith(f"/posts/{post.id}")
    assert _tag_names(post) == ["Ruby", "Rails"]


def test_create_post_flashes_notice(client, db):
    rv = client.post("/posts", data={"title": "Created", "description": "Body"}, follow_redirects=True)
    assert rv.status_code == 200
    assert b"Post was successfully created." in rv.data


def test_create_post_invalid_rerenders_form(client, db):
    rv = client.post("/posts", data={"title": "", "description": "", "tag_names": "Ruby"})
    assert rv.status_code == 422
    assert b"Title can&#39;t be blank" in rv.data
    assert b"Description can&#39;t be blank" in rv.data
    assert Post.query.count() == 0
    assert Tag.query.count() == 0


def test_create_post_long_tag_rerenders_form(client, db):
    rv = client.post("/posts", data={"title": "T", "description": "D", "tag_names": "ok, " + "x" * 21})
    assert rv.status_code == 422
    assert b"tag is too long (maximum is 20 characters)" in rv.data
    assert Post.query.count() == 0
    assert Tag.query.count() == 0


def test_create_post_json(client, db):
    rv = client.post("/posts", json={"post": {"title": "Api", "description": "Body", "tag_names": "Ruby"}})
    assert rv.status_code == 201
    data = rv.get_json()
    assert data["title"] == "Api"
    assert data["tags"] == ["Ruby"]
    assert rv.headers["Location"].endswith(f"/posts/{data['id']}")


def test_create_post_json_invalid(client, db):
    rv = client.post("/posts", json={"title": "", "description": "Body"})
    assert rv.status_code == 422
    assert rv.get_json()["errors"] == {"title": ["can't be blank"]}
    assert Post.query.count() == 0


def test_create_ignores_unknown_params(client, db):
    rv = client.post("/posts", json={"title": "Safe", "description": "Body", "admin": True})
    assert rv.status_code == 201
    assert not hasattr(Post.query.one(), "admin")


def test_create_stores_markup_verbatim(client, db):
    client.post(
        "/posts",
        data={"title": "<script>alert('xss')</script>", "description": "<img src=x onerror=alert('xss')>"},
    )
    post = Post.query.one()
    assert post.title == "<script>alert('xss')</script>"
    assert post.description == "<img src=x onerror=alert('xss')>"


# ── Edit / update ──────────────────────────────────────────────────


def test_edit_form_prefills_tag_names(client, db):
    post = _make_post(tags=[_make_tag("Ruby"), _make_tag("Rails")])
    rv = client.get(f"/posts/{post.id}/edit")
    assert rv.status_code == 200
    assert b"Ruby, Rails" in rv.data


def test_edit_missing_post_returns_404(client):
    assert client.get("/posts/99999/edit").status_code == 404


def test_update_post_replaces_tags(client, db):
    post = _make_post(title="Before", tags=[_make_tag("A"), _make_tag("B")])
    rv = client.post(
        f"/posts/{post.id}/edit",
        data={"title": "After", "description": "Body", "tag_names": "B, C"},
        follow_redirects=True,
    )
    assert rv.status_code == 200
    assert b"Post was successfully updated." in rv.data
    db.session.refresh(post)
    assert post.title == "After"
    assert sorted(_tag_names(post)) == ["B", "C"]


def test_update_without_tag_field_keeps_tags(client, db):
    post = _make_post(tags=[_make_tag("Ruby")])
    client.post(f"/posts/{post.id}/edit", data={"title": "Renamed", "description": "Body"})
    db.session.refresh(post)
    assert post.title == "Renamed"
    assert _tag_names(post) == ["Ruby"]


def test_update_with_empty_tag_field_clears_tags(client, db):
    post = _make_post(tags=[_make_tag("Ruby")])
    client.post(f"/posts/{post.id}/edit", data={"title": "T", "description": "D", "tag_names": ""})
    assert _tag_names(post) == []
    assert Tag.query.count() == 1


def test_update_invalid_rerenders_and_keeps_state(client, db):
    post = _make_post(title="Original", tags=[_make_tag("Ruby")])
    rv = client.post(f"/posts/{post.id}/edit", data={"title": "", "description": "D", "tag_names": "Other"})
    assert rv.status_code == 422
    db.session.refresh(post)
    assert post.title == "Original"
    assert _tag_names(post) == ["Ruby"]
    assert Tag.query.filter_by(name="Other").first() is None


def test_update_failed_tag_sync_rolls_back_everything(client, db):
    post = _make_post(title="Original", tags=[_make_tag("Ruby")])
    rv = client.post(
        f"/posts/{post.id}/edit",
        data={"title": "Changed", "description": "D", "tag_names": "Fresh, " + "x" * 21},
    )
    assert rv.status_code == 422
    db.session.refresh(post)
    assert post.title == "Original"
    assert _tag_names(post) == ["Ruby"]
    assert Tag.query.filter_by(name="Fresh").first() is None


def test_patch_json_updates_scalars_only(client, db):
    post = _make_post(title="Before", tags=[_make_tag("Ruby")])
    rv = client.patch(f"/posts/{post.id}", json={"post": {"title": "After"}})
    assert rv.status_code == 200
    data = rv.get_json()
    assert data["title"] == "After"
    assert data["tags"] == ["Ruby"]


def test_patch_json_with_empty_tags_clears(client, db):
    post = _make_post(tags=[_make_tag("Ruby")])
    rv = client.patch(f"/posts/{post.id}", json={"tag_names": ""})
    assert rv.status_code == 200
    assert rv.get_json()["tags"] == []
    assert PostTag.query.count() == 0


def test_put_json_accepts_tag_list(client, db):
    post = _make_post()
    rv = client.put(f"/posts/{post.id}", json={"tag_names": ["Ruby", "Rails", "Ruby"]})
    assert rv.status_code == 200
    assert rv.get_json()["tags"] == ["Ruby", "Rails"]


def test_patch_json_invalid(client, db):
    post = _make_post()
    rv = client.patch(f"/posts/{post.id}", json={"description": "a" * 1001})
    assert rv.status_code == 422
    assert rv.get_json()["errors"] == {"description": ["is too long (maximum is 1000 characters)"]}


def test_patch_missing_post_returns_404(client):
    assert client.patch("/posts/99999", json={"title": "x"}).status_code == 404


# ── Destroy ────────────────────────────────────────────────────────


def test_delete_post_via_form(client, db):
    post = _make_post(tags=[_make_tag("Ruby")])
    rv = client.post(f"/posts/{post.id}/delete", follow_redirects=True)
    assert rv.status_code == 200
    assert b"Post was successfully destroyed." in rv.data
    assert Post.query.count() == 0
    assert PostTag.query.count() == 0
    assert Tag.query.count() == 1


def test_delete_post_via_delete_method(client, db):
    post = _make_post()
    rv = client.delete(f"/posts/{post.id}", headers=JSON)
    assert rv.status_code == 204
    assert Post.query.count() == 0


def test_delete_missing_post_returns_404(client):
    assert client.delete("/posts/99999").status_code == 404


# ── Input normalisation ────────────────────────────────────────────


def test_long_keyword_is_truncated(app, client, db):
    _make_post(title="x" * 10)
    limit = app.config["SEARCH_MAX_LENGTH"]
    rv = client.get("/posts", query_string={"q": "x" * 5000}, headers=JSON)
    assert rv.status_code == 200
    assert len(rv.get_json()["q"]) == limit == 200


def test_json_create_strips_title_like_form(client, db):
    client.post("/posts", json={"title": "  Api  ", "description": "Body"})
    client.post("/posts", data={"title": "  Form  ", "description": "Body"})
    assert sorted(p.title for p in Post.query.all()) == ["Api", "Form"]
