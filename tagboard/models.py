import sqlite3
from datetime import UTC, datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

db = SQLAlchemy()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # post_tags relies on ON DELETE CASCADE, which SQLite ignores unless asked.
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

POST_TITLE_MAX_LENGTH = 255
POST_DESCRIPTION_MAX_LENGTH = 1000
TAG_NAME_MAX_LENGTH = 20


def _utcnow():
    return datetime.now(UTC)


def _is_blank(value):
    return value is None or not str(value).strip()


def _check_presence_and_length(errors, field, value, max_length):
    if _is_blank(value):
        errors.setdefault(field, []).append("can't be blank")
    elif len(value) > max_length:
        errors.setdefault(field, []).append(f"is too long (maximum is {max_length} characters)")


# ── Post ────────────────────────────────────────────────────────────


class Post(db.Model):
    __tablename__ = "posts"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(POST_TITLE_MAX_LENGTH), nullable=False)
    description = db.Column(db.String(POST_DESCRIPTION_MAX_LENGTH), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    post_tags = db.relationship(
        "PostTag",
        back_populates="post",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PostTag.id",
    )
    # Read-only; writes go through post_tags.
    tags = db.relationship(
        "Tag",
        secondary="post_tags",
        viewonly=True,
        order_by="PostTag.id",
    )

    def validation_errors(self):
        errors = {}
        _check_presence_and_length(errors, "title", self.title, POST_TITLE_MAX_LENGTH)
        _check_presence_and_length(errors, "description", self.description, POST_DESCRIPTION_MAX_LENGTH)
        return errors

    @property
    def tag_names_as_string(self):
        """Comma-and-space joined tag names, used to pre-fill the edit form."""
        return ", ".join(tag.name for tag in self.tags)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "tags": [tag.name for tag in self.tags],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Post {self.title[:40]}>"


# ── Tag ─────────────────────────────────────────────────────────────


class Tag(db.Model):
    __tablename__ = "tags"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(TAG_NAME_MAX_LENGTH), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (db.UniqueConstraint("name", name="uq_tags_name"),)

    post_tags = db.relationship(
        "PostTag",
        back_populates="tag",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    posts = db.relationship("Post", secondary="post_tags", viewonly=True, order_by="Post.id")

    def validation_errors(self):
        errors = {}
        _check_presence_and_length(errors, "name", self.name, TAG_NAME_MAX_LENGTH)
        if "name" not in errors:
            # Exact, case-sensitive match; the unique constraint backs this up.
            query = Tag.query.filter(Tag.name == self.name)
            if self.id is not None:
                query = query.filter(Tag.id != self.id)
            with db.session.no_autoflush:
                taken = query.first() is not None
            if taken:
                errors["name"] = ["has already been taken"]
        return errors

    def to_dict(self):
        return {"id": self.id, "name": self.name}

    def __repr__(self):
        return f"<Tag {self.name}>"


# ── Post ↔ Tag association ──────────────────────────────────────────


class PostTag(db.Model):
    __tablename__ = "post_tags"

    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    tag_id = db.Column(db.Integer, db.ForeignKey("tags.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (db.UniqueConstraint("post_id", "tag_id", name="uq_post_tags_post_tag"),)

    post = db.relationship("Post", back_populates="post_tags")
    tag = db.relationship("Tag", back_populates="post_tags")

    def validation_errors(self):
        errors = {}
        post_id = self.post.id if self.post is not None else self.post_id
        tag_id = self.tag.id if self.tag is not None else self.tag_id
        if self.post is None and self.post_id is None:
            errors["post"] = ["must exist"]
        if self.tag is None and self.tag_id is None:
            errors["tag"] = ["must exist"]
        if not errors and post_id is not None and tag_id is not None:
            query = PostTag.query.filter_by(post_id=post_id, tag_id=tag_id)
            if self.id is not None:
                query = query.filter(PostTag.id != self.id)
            with db.session.no_autoflush:
                taken = query.first() is not None
            if taken:
                errors["post_id"] = ["has already been taken"]
        return errors

    def __repr__(self):
        return f"<PostTag post={self.post_id} tag={self.tag_id}>"
