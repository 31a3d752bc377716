from unittest.mock import patch

import pytest

from tagboard.models import Post, PostTag, Tag
from tagboard.models import db as _db


@pytest.fixture(scope="session")
def app():
    """Create a Flask application configured for testing (session-scoped)."""
    with patch("tagboard.upgrade"):
        from tagboard import create_app

        _app = create_app("testing")

    yield _app


@pytest.fixture(autouse=True)
def db(app):
    """Create all tables before each test, drop them after."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def client(app):
    """Test client."""
    return app.test_client()


def _make_tag(name="Ruby"):
    """Create and persist a Tag. Callable multiple times per test."""
    tag = Tag(name=name)
    _db.session.add(tag)
    _db.session.commit()
    return tag


def _make_post(title="Test Post", description="Test description", tags=()):
    """Create and persist a Post, attaching the given Tag objects in order."""
    post = Post(title=title, description=description)
    for tag in tags:
        post.post_tags.append(PostTag(tag=tag))
    _db.session.add(post)
    _db.session.commit()
    return post


def _tag_names(post):
    _db.session.expire(post, ["tags"])
    return [tag.name for tag in post.tags]
