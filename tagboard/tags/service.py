from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import NotFoundError, ValidationError
from ..models import PostTag, Tag, db


def _clean_names(names):
    """Strip names, drop blanks and repeats, keep first-occurrence order."""
    seen = set()
    cleaned = []
    for raw in names:
        if raw is None:
            continue
        name = raw.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        cleaned.append(name)
    return cleaned


def parse_tag_names(raw_tag_names):
    """Split a comma-separated tag string into distinct, trimmed names."""
    if not raw_tag_names:
        return []
    return _clean_names(raw_tag_names.split(","))


def get_tag(tag_id):
    tag = db.session.get(Tag, tag_id)
    if tag is None:
        raise NotFoundError("Tag", tag_id)
    return tag


def create_tag(name):
    """Add a new Tag to the session and flush it.

    Raises ValidationError for a blank, over-long or already taken name.
    """
    tag = Tag(name=name.strip() if name else name)
    errors = tag.validation_errors()
    if errors:
        raise ValidationError(errors)

    db.session.add(tag)
    try:
        db.session.flush()
    except IntegrityError:
        # Lost a race with another writer to uq_tags_name. The caller owns
        # the transaction and rolls it back.
        raise ValidationError({"name": ["has already been taken"]}) from None
    return tag


def resolve_or_create(names):
    """Return a Tag per distinct trimmed name, creating the missing ones.

    Blank and ``None`` entries are ignored. The result follows the order in
    which each name first appears in ``names``.
    """
    tags = []
    for name in _clean_names(names):
        tag = Tag.query.filter_by(name=name).first()
        if tag is None:
            tag = create_tag(name)
            current_app.logger.info("Created tag %r", name)
        tags.append(tag)
    return tags


def sync_post_tags(post, raw_tag_names):
    """Replace the post's tag associations with the tags named in ``raw_tag_names``.

    ``None`` means the caller never supplied a tag string and leaves the
    existing associations alone. An empty or all-blank string clears them.

    Does not commit; the caller owns the transaction so that the scalar
    save and the association swap land together or not at all.
    """
    if raw_tag_names is None:
        return

    names = parse_tag_names(raw_tag_names)

    post.post_tags.clear()
    # Deletes must hit the database before the replacement rows, otherwise
    # a retained tag would collide with uq_post_tags_post_tag.
    db.session.flush()

    if names:
        try:
            tags = resolve_or_create(names)
        except ValidationError as exc:
            raise ValidationError({"tag_names": [f"tag {m}" for m in exc.errors.get("name", [])]}) from exc
        for tag in tags:
            link = PostTag(post=post, tag=tag)
            errors = link.validation_errors()
            if errors:
                raise ValidationError({"tag_names": [f"tag {m}" for ms in errors.values() for m in ms]})
            db.session.add(link)
        db.session.flush()

    db.session.expire(post, ["tags"])
    current_app.logger.debug("Synced tags for post %s: %s", post.id, names)


def delete_tag(tag):
    """Delete a tag; its associations go with it, the posts stay."""
    name = tag.name
    try:
        db.session.delete(tag)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        raise
    current_app.logger.info("Deleted tag %r", name)
