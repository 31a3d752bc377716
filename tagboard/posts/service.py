from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload

from ..errors import NotFoundError, ValidationError
from ..models import Post, Tag, db
from ..tags.service import sync_post_tags


def _escape_like(value):
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_post(post_id):
    post = db.session.get(Post, post_id, options=[selectinload(Post.tags)])
    if post is None:
        raise NotFoundError("Post", post_id)
    return post


def _save(post, tag_names):
    """Validate, persist and sync tags for ``post`` in a single transaction."""
    if post.title:
        post.title = post.title.strip()
    errors = post.validation_errors()
    if errors:
        # Nothing written yet; discard the pending scalar changes.
        if post in db.session:
            db.session.rollback()
        raise ValidationError(errors)

    try:
        db.session.add(post)
        db.session.flush()
        sync_post_tags(post, tag_names)
        db.session.commit()
    except ValidationError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("Integrity error while saving post: %s", exc.orig)
        raise ValidationError({"tag_names": ["has already been taken"]}) from exc
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return post


def create_post(title, description, tag_names=None):
    """Create a post. ``tag_names=None`` means no tag string was submitted."""
    post = Post(title=title, description=description)
    _save(post, tag_names)
    current_app.logger.info("Created post %s: %s", post.id, post.title)
    return post


def update_post(post, title=None, description=None, tag_names=None):
    """Update a post; arguments left as ``None`` are not touched."""
    if title is not None:
        post.title = title
    if description is not None:
        post.description = description
    _save(post, tag_names)
    current_app.logger.info("Updated post %s", post.id)
    return post


def delete_post(post):
    post_id = post.id
    try:
        db.session.delete(post)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    current_app.logger.info("Deleted post %s", post_id)


def search_posts(keyword=None, tag_name=None):
    """Build the listing query for a keyword and/or a selected tag.

    The keyword is a case-insensitive substring match on title or
    description. The tag name is trimmed and matched exactly; blank means
    no tag restriction. Both constraints apply together when given.
    Results are ordered by id with each post's tags eager-loaded.
    """
    query = Post.query.options(selectinload(Post.tags))

    if keyword and keyword.strip():
        pattern = f"%{_escape_like(keyword)}%"
        query = query.filter(
            db.or_(
                Post.title.ilike(pattern, escape="\\"),
                Post.description.ilike(pattern, escape="\\"),
            )
        )

    selected_tag = (tag_name or "").strip()
    if selected_tag:
        # EXISTS rather than a join, so a post never appears twice.
        query = query.filter(Post.tags.any(Tag.name == selected_tag))

    return query.order_by(Post.id.asc())


def all_tag_names():
    """Every tag name alphabetically, regardless of what the current search matched."""
    return [name for (name,) in db.session.query(Tag.name).order_by(Tag.name.asc()).all()]
