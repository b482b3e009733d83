"""
Tag service: tags and the post/tag join rows.

Linking is idempotent: asking to link a pair that is already linked writes
nothing and reports ``False``.  The insert runs inside a SAVEPOINT, so when
a concurrent request writes the same pair first, the ``post_tags``
composite primary key rejects ours, only the savepoint is rolled back, and
the answer is still ``False``.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import is_unique_violation
from blog_api.errors import ConflictError
from blog_api.models import Post, PostTag, Tag
from blog_api.schemas import TagCreate
from blog_api.services.slugs import derive_slug
from blog_api.services.telemetry import logged

logger = logging.getLogger(__name__)

SERVICE = "TagService"


def tag_to_dict(tag: Tag) -> dict:
    return {
        "id": tag.id,
        "name": tag.name,
        "slug": tag.slug,
        "description": tag.description,
        "color": tag.color,
    }


def _post_count_expr():
    return (
        select(func.count(PostTag.post_id))
        .where(PostTag.tag_id == Tag.id)
        .correlate(Tag)
        .scalar_subquery()
    )


@logged(SERVICE, "create tag")
async def create_tag(db: AsyncSession, data: TagCreate) -> dict:
    """
    Insert a tag.  The slug defaults to ``derive_slug(name)``.

    Raises ``ConflictError`` when the slug is already taken and
    ``InvalidSlugError`` when none was given and none can be derived.
    """
    tag = Tag(
        name=data.name,
        slug=data.slug or derive_slug(data.name),
        description=data.description,
        color=data.color,
    )
    db.add(tag)
    try:
        await db.flush()
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        raise ConflictError("Tag slug already exists") from exc
    return tag_to_dict(tag)


@logged(SERVICE, "find all tags")
async def get_tags(db: AsyncSession) -> list[dict]:
    q = select(Tag, _post_count_expr().label("post_count")).order_by(Tag.name, Tag.id)
    tags = []
    for tag, post_count in (await db.execute(q)).all():
        data = tag_to_dict(tag)
        data["post_count"] = post_count
        tags.append(data)
    return tags


@logged(SERVICE, "find tag by id")
async def get_tag(db: AsyncSession, tag_id: int) -> dict | None:
    q = select(Tag, _post_count_expr().label("post_count")).where(Tag.id == tag_id)
    row = (await db.execute(q)).one_or_none()
    if row is None:
        return None
    tag, post_count = row
    data = tag_to_dict(tag)
    data["post_count"] = post_count
    return data


@logged(SERVICE, "count tags")
async def count_tags(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(Tag))).scalar_one()


@logged(SERVICE, "link tag to post")
async def link_tag(db: AsyncSession, post_id: int, tag_id: int) -> bool | None:
    """
    Ensure *post_id* is tagged with *tag_id*.

    Returns True when a join row was written, False when the pair was
    already linked, and None when either the post or the tag is missing.
    """
    if await db.get(Post, post_id) is None or await db.get(Tag, tag_id) is None:
        return None

    if await db.get(PostTag, (post_id, tag_id)) is not None:
        logger.info("Post %d already tagged with %d; nothing to do", post_id, tag_id)
        return False

    try:
        async with db.begin_nested():
            db.add(PostTag(post_id=post_id, tag_id=tag_id))
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        logger.info("Post %d was tagged with %d concurrently; nothing to do", post_id, tag_id)
        return False
    return True


@logged(SERVICE, "find tags for post")
async def get_post_tags(db: AsyncSession, post_id: int) -> list[dict] | None:
    """Tags on *post_id* ordered by name; None for an unknown post."""
    if await db.get(Post, post_id) is None:
        return None
    q = (
        select(Tag)
        .join(PostTag, PostTag.tag_id == Tag.id)
        .where(PostTag.post_id == post_id)
        .order_by(Tag.name, Tag.id)
    )
    return [tag_to_dict(t) for t in (await db.execute(q)).scalars().all()]
