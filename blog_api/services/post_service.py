"""
Post service: business logic for the Post aggregate.

Design notes
------------
- ``get_post`` is a read with a write attached: every successful lookup
  bumps ``view_count`` by one.  The bump is a single
  ``UPDATE ... SET view_count = view_count + 1 RETURNING view_count``
  issued *before* the hydrating SELECT, so concurrent readers never lose
  an increment and a missing post is detected without a separate query.
  The count returned to the caller includes the caller's own view.
- ``published_at`` is stamped only at creation time, when the post is
  created as PUBLISHED.  Nothing in this module changes status later.
- Eager loading uses ``joinedload`` for the author (many-to-one) and
  ``selectinload`` for tags, matching the ``lazy="noload"`` defaults on
  the models.
- Service functions flush but do not commit; the transaction boundary
  is owned by the caller (``get_db`` or the seed runner).
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from blog_api.database import is_unique_violation
from blog_api.errors import ConflictError, InvalidReferenceError
from blog_api.models import Comment, Post, PostStatus, User
from blog_api.schemas import PostCreate
from blog_api.services.comment_service import load_top_level_comments
from blog_api.services.slugs import derive_slug
from blog_api.services.tag_service import tag_to_dict
from blog_api.services.telemetry import logged
from blog_api.services.user_service import author_profile, author_summary

logger = logging.getLogger(__name__)

SERVICE = "PostService"


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _iso(value):
    return value.isoformat() if value else None


def _post_to_dict(post: Post) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "content": post.content,
        "excerpt": post.excerpt,
        "status": post.status.value,
        "view_count": post.view_count,
        "like_count": post.like_count,
        "published_at": _iso(post.published_at),
        "created_at": _iso(post.created_at),
        "updated_at": _iso(post.updated_at),
        "author_id": post.author_id,
    }


def _comment_count_expr():
    return (
        select(func.count(Comment.id))
        .where(Comment.post_id == Post.id)
        .correlate(Post)
        .scalar_subquery()
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

@logged(SERVICE, "find all posts")
async def get_posts(db: AsyncSession) -> list[dict]:
    """
    Return every post, newest first, with an author summary, its tags and
    the number of comments attached to it.
    """
    q = (
        select(Post, _comment_count_expr().label("comment_count"))
        .options(joinedload(Post.author), selectinload(Post.tags))
        .order_by(Post.created_at.desc(), Post.id.desc())
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)

    posts = []
    for post, comment_count in result.all():
        data = _post_to_dict(post)
        data["author"] = author_summary(post.author)
        data["tags"] = [tag_to_dict(t) for t in post.tags]
        data["comment_count"] = comment_count
        posts.append(data)
    logger.debug("Loaded %d posts", len(posts))
    return posts


@logged(SERVICE, "find post by id")
async def get_post(db: AsyncSession, post_id: int) -> dict | None:
    """
    Return the full detail dict for *post_id*, counting this call as a view.

    The detail carries the author's profile, tags, and the top-level
    comments (oldest first) each with their direct replies.  Returns None
    when the post does not exist, in which case no counter is touched.
    """
    bump = (
        update(Post)
        .where(Post.id == post_id)
        .values(view_count=Post.view_count + 1)
        .returning(Post.view_count)
        .execution_options(synchronize_session=False)
    )
    view_count = (await db.execute(bump)).scalar_one_or_none()
    if view_count is None:
        logger.info("Post %d not found", post_id)
        return None

    q = (
        select(Post)
        .where(Post.id == post_id)
        .options(joinedload(Post.author), selectinload(Post.tags))
        .execution_options(populate_existing=True)
    )
    post = (await db.execute(q)).scalar_one()

    data = _post_to_dict(post)
    data["author"] = author_profile(post.author)
    data["tags"] = [tag_to_dict(t) for t in post.tags]
    data["comments"] = await load_top_level_comments(db, post_id)
    logger.info("Found post %r (views: %d)", post.title, view_count)
    return data


@logged(SERVICE, "create post")
async def create_post(db: AsyncSession, data: PostCreate) -> dict:
    """
    Insert a post and return its serialised dict.

    ``status`` defaults to DRAFT and ``slug`` to ``derive_slug(title)``.
    A post created as PUBLISHED gets ``published_at`` set to now.

    Raises ``InvalidReferenceError`` for an unknown author,
    ``InvalidSlugError`` when no slug was given and none can be derived
    from the title, and ``ConflictError`` when the slug is already used by
    another post.  Other integrity failures propagate unchanged.
    """
    if await db.get(User, data.author_id) is None:
        raise InvalidReferenceError("User", data.author_id)

    status = data.status or PostStatus.DRAFT
    slug = data.slug or derive_slug(data.title)
    post = Post(
        title=data.title,
        slug=slug,
        content=data.content,
        excerpt=data.excerpt,
        status=status,
        author_id=data.author_id,
        view_count=data.view_count,
        like_count=data.like_count,
        published_at=datetime.now(timezone.utc) if status == PostStatus.PUBLISHED else None,
    )
    db.add(post)
    try:
        await db.flush()
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        raise ConflictError(f"Post slug {slug!r} already exists") from exc
    await db.refresh(post)
    return _post_to_dict(post)


@logged(SERVICE, "count posts")
async def count_posts(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(Post))).scalar_one()


@logged(SERVICE, "count posts by status")
async def count_posts_by_status(db: AsyncSession, status: PostStatus) -> int:
    q = select(func.count()).select_from(Post).where(Post.status == status)
    return (await db.execute(q)).scalar_one()
