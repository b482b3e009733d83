"""
Comment service: threaded comments on posts.

A comment either sits at the top level of a post (``parent_id`` is None)
or replies to another comment on the *same* post; ``add_comment`` rejects
a parent from a different post.

Two read shapes are offered:

- ``get_comments``: top-level comments with their direct replies nested
  one level deep.  This is what the post detail view embeds.
- ``get_comment_thread``: the whole tree at any depth, built in memory
  from a single flat query.
"""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from blog_api.errors import InvalidReferenceError
from blog_api.models import Comment, Post, User
from blog_api.schemas import CommentCreate
from blog_api.services.telemetry import logged
from blog_api.services.user_service import author_summary

SERVICE = "CommentService"


def _comment_to_dict(comment: Comment, author: User | None = None) -> dict:
    return {
        "id": comment.id,
        "content": comment.content,
        "post_id": comment.post_id,
        "parent_id": comment.parent_id,
        "author_id": comment.author_id,
        "author": author_summary(author if author is not None else comment.author),
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
        "updated_at": comment.updated_at.isoformat() if comment.updated_at else None,
    }


async def _post_exists(db: AsyncSession, post_id: int) -> bool:
    result = await db.execute(select(Post.id).where(Post.id == post_id))
    return result.scalar_one_or_none() is not None


async def load_top_level_comments(db: AsyncSession, post_id: int) -> list[dict]:
    """
    Top-level comments of *post_id* (oldest first), each with its author
    and its direct replies (oldest first).  Deeper replies are not loaded.
    """
    q = (
        select(Comment)
        .where(Comment.post_id == post_id, Comment.parent_id.is_(None))
        .options(
            joinedload(Comment.author),
            selectinload(Comment.replies).joinedload(Comment.author),
        )
        .order_by(Comment.created_at, Comment.id)
        .execution_options(populate_existing=True)
    )
    comments = (await db.execute(q)).unique().scalars().all()

    items = []
    for comment in comments:
        data = _comment_to_dict(comment)
        data["replies"] = [_comment_to_dict(reply) for reply in comment.replies]
        items.append(data)
    return items


@logged(SERVICE, "create comment")
async def add_comment(db: AsyncSession, post_id: int, data: CommentCreate) -> dict | None:
    """
    Attach a comment to *post_id*, optionally as a reply to ``data.parent_id``.

    Returns None when the post does not exist.  Raises
    ``InvalidReferenceError`` when the author or parent comment is
    missing, or when the parent belongs to another post.
    """
    if not await _post_exists(db, post_id):
        return None

    author = await db.get(User, data.author_id)
    if author is None:
        raise InvalidReferenceError("User", data.author_id)

    if data.parent_id is not None:
        parent = await db.get(Comment, data.parent_id)
        if parent is None:
            raise InvalidReferenceError("Comment", data.parent_id)
        if parent.post_id != post_id:
            raise InvalidReferenceError(
                "Comment", data.parent_id, f"belongs to post {parent.post_id}, not post {post_id}"
            )

    comment = Comment(
        content=data.content,
        author_id=data.author_id,
        post_id=post_id,
        parent_id=data.parent_id,
    )
    db.add(comment)
    await db.flush()
    await db.refresh(comment)
    return _comment_to_dict(comment, author=author)


@logged(SERVICE, "find comments for post")
async def get_comments(db: AsyncSession, post_id: int) -> list[dict] | None:
    """Top-level comments with one level of replies; None for an unknown post."""
    if not await _post_exists(db, post_id):
        return None
    return await load_top_level_comments(db, post_id)


@logged(SERVICE, "build comment thread")
async def get_comment_thread(db: AsyncSession, post_id: int) -> list[dict] | None:
    """
    Return the full reply tree for *post_id*, or None for an unknown post.

    Every node carries ``depth`` (0 for top-level) and ``replies``; siblings
    are ordered oldest first.
    """
    if not await _post_exists(db, post_id):
        return None

    q = (
        select(Comment)
        .where(Comment.post_id == post_id)
        .options(joinedload(Comment.author))
        .order_by(Comment.created_at, Comment.id)
        .execution_options(populate_existing=True)
    )
    comments = (await db.execute(q)).scalars().all()

    nodes: dict[int, dict] = {}
    for comment in comments:
        node = _comment_to_dict(comment)
        node["replies"] = []
        nodes[comment.id] = node

    roots: list[dict] = []
    for comment in comments:
        node = nodes[comment.id]
        parent = nodes.get(comment.parent_id) if comment.parent_id is not None else None
        if parent is None:
            roots.append(node)
        else:
            parent["replies"].append(node)

    # Assign depths top-down; iterative so deep threads cannot hit the recursion limit.
    stack = [(node, 0) for node in roots]
    while stack:
        node, depth = stack.pop()
        node["depth"] = depth
        stack.extend((child, depth + 1) for child in node["replies"])

    return roots


@logged(SERVICE, "count comments")
async def count_comments(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(Comment))).scalar_one()
