"""Tag listing and removal."""

from flask import Blueprint, flash, jsonify, redirect, render_template, url_for
from sqlalchemy import func

from .. import limiter
from ..errors import wants_json
from ..models import PostTag, Tag, db
from .service import delete_tag, get_tag

tags_bp = Blueprint("tags", __name__)


@tags_bp.route("/tags")
def index():
    rows = (
        db.session.query(Tag, func.count(PostTag.id).label("post_count"))
        .outerjoin(Tag.post_tags)
        .group_by(Tag.id)
        .order_by(Tag.name.asc())
        .all()
    )

    if wants_json():
        return jsonify(tags=[dict(tag.to_dict(), post_count=count) for tag, count in rows])

    return render_template("tags/index.html", rows=rows)


@tags_bp.route("/tags/<int:tag_id>", methods=["DELETE"])
@limiter.limit("30 per minute")
def destroy(tag_id):
    delete_tag(get_tag(tag_id))
    return "", 204


@tags_bp.route("/tags/<int:tag_id>/delete", methods=["POST"])
@limiter.limit("30 per minute")
def delete(tag_id):
    tag = get_tag(tag_id)
    name = tag.name
    delete_tag(tag)
    if wants_json():
        return "", 204
    flash(f"Tag “{name}” was removed.", "success")
    return redirect(url_for("tags.index"), code=303)
