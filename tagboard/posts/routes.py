from flask import Blueprint, current_app, flash, jsonify, redirect, render_template, request, url_for

from .. import limiter
from ..errors import ValidationError, wants_json
from .forms import PostForm, PostSearchForm
from .service import all_tag_names, create_post, delete_post, get_post, search_posts, update_post

posts_bp = Blueprint("posts", __name__)


def _json_params():
    """Post attributes from a JSON body, flat or nested under ``"post"``."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return {}
    if isinstance(payload.get("post"), dict):
        return payload["post"]
    return payload


def _as_text(value):
    if value is None:
        return None
    if isinstance(value, list):
        return ",".join(str(v) for v in value if v is not None)
    return str(value)


def _submitted_tag_names(form):
    # Absent field and empty field differ: only the latter clears the tags.
    if "tag_names" not in request.form:
        return None
    return form.tag_names.data or ""


@posts_bp.route("/")
def home():
    return redirect(url_for("posts.index"))


@posts_bp.route("/posts")
def index():
    form = PostSearchForm(request.args)

    tag_names = all_tag_names()
    form.tag.choices = [("", "All Tags")] + [(name, name) for name in tag_names]

    # Over-long keywords are cut rather than rejected.
    keyword = (form.q.data or "")[: current_app.config["SEARCH_MAX_LENGTH"]]
    form.q.data = keyword
    selected_tag = (form.tag.data or "").strip()
    query = search_posts(keyword=keyword, tag_name=selected_tag)

    page = request.args.get("page", 1, type=int)
    per_page = current_app.config.get("POSTS_PER_PAGE", 20)
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)

    if wants_json():
        return jsonify(
            posts=[post.to_dict() for post in pagination.items],
            count=pagination.total,
            page=pagination.page,
            pages=pagination.pages,
            q=keyword,
            tag=selected_tag,
            tags=tag_names,
        )

    if pagination.page > pagination.pages and pagination.pages > 0:
        return redirect(url_for("posts.index", q=keyword, tag=selected_tag, page=pagination.pages))

    return render_template(
        "posts/index.html",
        form=form,
        posts=pagination.items,
        pagination=pagination,
        total_count=pagination.total,
        keyword=keyword,
        selected_tag=selected_tag,
        has_active_search=bool(keyword.strip() or selected_tag),
    )


@posts_bp.route("/posts/new")
def new():
    return render_template("posts/new.html", form=PostForm())


@posts_bp.route("/posts", methods=["POST"])
@limiter.limit("30 per minute")
def create():
    if wants_json():
        params = _json_params()
        try:
            post = create_post(
                _as_text(params.get("title")),
                _as_text(params.get("description")),
                tag_names=_as_text(params.get("tag_names")),
            )
        except ValidationError as exc:
            return jsonify(errors=exc.errors), 422
        return jsonify(post.to_dict()), 201, {"Location": url_for("posts.show", post_id=post.id)}

    form = PostForm()
    if form.validate_on_submit():
        try:
            post = create_post(
                form.title.data,
                form.description.data,
                tag_names=_submitted_tag_names(form),
            )
        except ValidationError as exc:
            form.add_errors(exc.errors)
        else:
            flash("Post was successfully created.", "success")
            return redirect(url_for("posts.show", post_id=post.id))

    return render_template("posts/new.html", form=form), 422


@posts_bp.route("/posts/<int:post_id>")
def show(post_id):
    post = get_post(post_id)
    if wants_json():
        return jsonify(post.to_dict())
    return render_template("posts/show.html", post=post)


@posts_bp.route("/posts/<int:post_id>/edit", methods=["GET", "POST"])
@limiter.limit("30 per minute", methods=["POST"])
def edit(post_id):
    post = get_post(post_id)

    form = PostForm(obj=post)
    if request.method == "GET":
        form.tag_names.data = post.tag_names_as_string
        return render_template("posts/edit.html", form=form, post=post)

    if form.validate_on_submit():
        try:
            update_post(
                post,
                title=form.title.data,
                description=form.description.data,
                tag_names=_submitted_tag_names(form),
            )
        except ValidationError as exc:
            form.add_errors(exc.errors)
        else:
            flash("Post was successfully updated.", "success")
            return redirect(url_for("posts.show", post_id=post.id), code=303)

    return render_template("posts/edit.html", form=form, post=post), 422


@posts_bp.route("/posts/<int:post_id>", methods=["PATCH", "PUT"])
@limiter.limit("30 per minute")
def update(post_id):
    post = get_post(post_id)
    params = _json_params() if request.is_json else request.form
    try:
        update_post(
            post,
            title=_as_text(params.get("title")),
            description=_as_text(params.get("description")),
            tag_names=_as_text(params.get("tag_names")),
        )
    except ValidationError as exc:
        return jsonify(errors=exc.errors), 422
    return jsonify(post.to_dict())


@posts_bp.route("/posts/<int:post_id>", methods=["DELETE"])
@limiter.limit("30 per minute")
def destroy(post_id):
    delete_post(get_post(post_id))
    return "", 204


@posts_bp.route("/posts/<int:post_id>/delete", methods=["POST"])
@limiter.limit("30 per minute")
def delete(post_id):
    delete_post(get_post(post_id))
    if wants_json():
        return "", 204
    flash("Post was successfully destroyed.", "success")
    return redirect(url_for("posts.index"), code=303)
