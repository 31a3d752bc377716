"""Sample tags and posts for local development.

Idempotent: tags and posts are found or created by name/title, and tags
are only attached to posts that have none yet.
"""

import random

import click
from flask import current_app
from flask.cli import with_appcontext

from .models import Post, PostTag, Tag, db

SAMPLE_TAG_NAMES = [
    "Ruby",
    "Rails",
    "JavaScript",
    "HTML",
    "CSS",
    "Programming",
    "Web",
    "Frontend",
    "Backend",
    "Database",
    "Beginner",
    "Intermediate",
    "Advanced",
    "Tutorial",
    "tips",
]

SAMPLE_DESCRIPTION = (
    "This is sample post number {n}. Lorem ipsum dolor sit amet, consectetur adipiscing elit. "
    "Sed do eiusmod tempor incididunt ut labore et dolore magna aliqua."
)


def seed_sample_data(post_count=30, rng=None):
    """Create the sample tags and ``post_count`` posts. Returns (tags, posts)."""
    rng = rng or random.Random()

    tags = []
    for name in SAMPLE_TAG_NAMES:
        tag = Tag.query.filter_by(name=name).first()
        if tag is None:
            tag = Tag(name=name)
            db.session.add(tag)
        tags.append(tag)
    db.session.flush()

    posts = []
    for i in range(1, post_count + 1):
        title = f"Sample post {i}"
        post = Post.query.filter_by(title=title).first()
        if post is None:
            post = Post(title=title, description=SAMPLE_DESCRIPTION.format(n=i))
            db.session.add(post)
            db.session.flush()
        if not post.post_tags:
            for tag in rng.sample(tags, rng.randint(1, 4)):
                post.post_tags.append(PostTag(tag=tag))
        posts.append(post)

    db.session.commit()
    current_app.logger.info("Seeded %d tags and %d posts", len(tags), len(posts))
    return tags, posts


@click.command("seed")
@click.option("--posts", "post_count", default=None, type=int, help="Number of sample posts.")
@with_appcontext
def seed_command(post_count):
    """Load sample tags and posts."""
    if post_count is None:
        post_count = current_app.config.get("SEED_POST_COUNT", 30)
    tags, posts = seed_sample_data(post_count)
    click.echo(f"Created or found {len(tags)} tags.")
    click.echo(f"Created or found {len(posts)} posts with tags.")
