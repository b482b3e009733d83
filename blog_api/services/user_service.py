"""
User service: create/read/count for the User aggregate.

Email and username uniqueness is enforced by the database (unique
constraints in the schema).  ``create_user`` turns the resulting
``IntegrityError`` into a ``ConflictError`` so callers never need to know
about SQLAlchemy exceptions.  Integrity failures other than uniqueness
propagate unchanged.
"""
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from blog_api.database import is_unique_violation
from blog_api.errors import ConflictError
from blog_api.models import Comment, Post, User
from blog_api.schemas import UserCreate
from blog_api.services.telemetry import logged

SERVICE = "UserService"


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _iso(value):
    return value.isoformat() if value else None


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "bio": user.bio,
        "avatar_url": user.avatar_url,
        "is_admin": user.is_admin,
        "created_at": _iso(user.created_at),
        "updated_at": _iso(user.updated_at),
    }


def author_summary(user: User | None) -> dict | None:
    """The author fields embedded in post and comment responses."""
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
    }


def author_profile(user: User | None) -> dict | None:
    """``author_summary`` plus the bio, used on the post detail view."""
    data = author_summary(user)
    if data is not None:
        data["bio"] = user.bio
    return data


def _post_summary_to_dict(post: Post) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug,
        "status": post.status.value,
        "created_at": _iso(post.created_at),
    }


def _post_count_expr():
    return (
        select(func.count(Post.id))
        .where(Post.author_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )


def _comment_count_expr():
    return (
        select(func.count(Comment.id))
        .where(Comment.author_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

@logged(SERVICE, "find all users")
async def get_users(db: AsyncSession) -> list[dict]:
    """
    Return every user, newest first, each with ``post_count`` and
    ``comment_count``.

    There is no pagination: the whole table comes back in one response.
    """
    q = select(
        User,
        _post_count_expr().label("post_count"),
        _comment_count_expr().label("comment_count"),
    ).order_by(User.created_at.desc(), User.id.desc())

    result = await db.execute(q)
    users = []
    for user, post_count, comment_count in result.all():
        data = _user_to_dict(user)
        data["post_count"] = post_count
        data["comment_count"] = comment_count
        users.append(data)
    return users


@logged(SERVICE, "find user by id")
async def get_user(db: AsyncSession, user_id: int) -> dict | None:
    """
    Return the user with a summary of their posts (newest first) and
    aggregate counts, or None when no such user exists.
    """
    q = (
        select(User, _comment_count_expr().label("comment_count"))
        .where(User.id == user_id)
        .options(selectinload(User.posts))
        .execution_options(populate_existing=True)
    )
    row = (await db.execute(q)).one_or_none()
    if row is None:
        return None

    user, comment_count = row
    posts = sorted(user.posts, key=lambda p: (p.created_at, p.id), reverse=True)
    data = _user_to_dict(user)
    data["posts"] = [_post_summary_to_dict(p) for p in posts]
    data["post_count"] = len(posts)
    data["comment_count"] = comment_count
    return data


@logged(SERVICE, "create user")
async def create_user(db: AsyncSession, data: UserCreate) -> dict:
    """
    Insert a user and return its serialised dict.

    Raises ``ConflictError`` when the email or username is already taken.
    The session must be rolled back by the caller after a conflict.
    """
    user = User(
        email=data.email,
        username=data.username,
        first_name=data.first_name,
        last_name=data.last_name,
        bio=data.bio,
        avatar_url=str(data.avatar_url) if data.avatar_url else None,
        is_admin=data.is_admin,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        raise ConflictError("Email or username already exists") from exc
    await db.refresh(user)
    return _user_to_dict(user)


@logged(SERVICE, "count users")
async def count_users(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(User))).scalar_one()
