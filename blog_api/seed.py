"""
Fixture data for development and demos.

Everything is created through the service layer in a fixed order:
wipe → users → tags → posts → post/tag links → comments (plus one reply).
Seeding is not idempotent: running ``seed(..., wipe_first=False)`` against
a populated database fails with ``ConflictError`` on the first duplicate
email.
"""
import logging

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import Database
from blog_api.models import Comment, Post, PostTag, Tag, User
from blog_api.schemas import CommentCreate, PostCreate, TagCreate, UserCreate
from blog_api.services import comment_service, post_service, tag_service, user_service

logger = logging.getLogger(__name__)

USERS = [
    {
        "email": "john@example.com",
        "username": "john_doe",
        "first_name": "John",
        "last_name": "Doe",
        "bio": "Software developer and tech enthusiast.",
        "is_admin": True,
    },
    {
        "email": "jane@example.com",
        "username": "jane_smith",
        "first_name": "Jane",
        "last_name": "Smith",
        "bio": "Frontend developer who loves React and TypeScript.",
    },
    {
        "email": "bob@example.com",
        "username": "bob_wilson",
        "first_name": "Bob",
        "last_name": "Wilson",
        "bio": "Backend engineer specializing in APIs and databases.",
    },
]

TAGS = [
    {"name": "Technology", "slug": "technology", "description": "Posts about technology and programming", "color": "#3B82F6"},
    {"name": "Tutorial", "slug": "tutorial", "description": "Step-by-step guides and tutorials", "color": "#10B981"},
    {"name": "Python", "slug": "python", "description": "The Python programming language", "color": "#F59E0B"},
    {"name": "FastAPI", "slug": "fastapi", "description": "FastAPI framework and ecosystem", "color": "#06B6D4"},
    {"name": "Databases", "slug": "databases", "description": "Relational databases and SQL", "color": "#84CC16"},
]

# (post fields, index into USERS for the author)
POSTS = [
    (
        {
            "title": "Getting Started with FastAPI and SQLAlchemy",
            "slug": "getting-started-fastapi-sqlalchemy",
            "content": "# Getting Started\n\nFastAPI is a fast, modern Python web framework...",
            "excerpt": "Set up a modern web application with FastAPI and async SQLAlchemy.",
            "status": "PUBLISHED",
            "view_count": 245,
            "like_count": 18,
        },
        0,
    ),
    (
        {
            "title": "Advanced Typing Patterns in Python",
            "slug": "advanced-python-typing-patterns",
            "content": "# Advanced Typing Patterns\n\nType hints have evolved significantly...",
            "excerpt": "Typing patterns that make backend code more robust.",
            "status": "PUBLISHED",
            "view_count": 189,
            "like_count": 23,
        },
        1,
    ),
    (
        {
            "title": "Building Scalable APIs",
            "slug": "building-scalable-apis",
            "content": "# Building Scalable APIs\n\nCreating scalable APIs requires...",
            "excerpt": "A guide to building APIs that scale with your business needs.",
            "status": "PUBLISHED",
            "view_count": 156,
            "like_count": 12,
        },
        2,
    ),
    (
        {
            "title": "Database Migrations: A Rails-inspired Approach",
            "slug": "database-migrations-rails-inspired",
            "content": "# Database Migrations\n\nOne of the best features of Ruby on Rails...",
            "excerpt": "Rails-like database migrations for Python projects with Alembic.",
            "status": "DRAFT",
        },
        0,
    ),
]

# post index -> tag indexes
POST_TAGS = [(0, [0, 1]), (1, [0, 2]), (2, [0, 4]), (3, [0, 1])]

# (content, author index, post index)
COMMENTS = [
    ("Great introduction! This helped me get started quickly.", 1, 0),
    ("Thanks for sharing this. The SQLAlchemy setup was exactly what I needed.", 2, 0),
    ("These typing patterns are really useful in my projects.", 0, 1),
    ("Could you add more examples of generic utilities?", 2, 1),
]

# (content, author index, index into COMMENTS of the parent)
REPLIES = [
    ("I'll consider adding more examples in a follow-up post. Thanks for the suggestion!", 1, 3),
]


async def wipe(db: AsyncSession) -> None:
    """
    Delete every row, children before parents.

    Irreversible.  Only the seed workflow calls this; no request path
    reaches it.
    """
    for model in (PostTag, Comment, Post, Tag, User):
        result = await db.execute(delete(model))
        logger.info("Cleared %s (%d rows)", model.__tablename__, result.rowcount)


async def seed(db: AsyncSession, *, wipe_first: bool = True) -> dict:
    """Populate the fixture data and return a summary of what was created."""
    if wipe_first:
        await wipe(db)

    users = [await user_service.create_user(db, UserCreate(**data)) for data in USERS]
    logger.info("Seeded users: %d", len(users))

    tags = [await tag_service.create_tag(db, TagCreate(**data)) for data in TAGS]
    logger.info("Seeded tags: %d", len(tags))

    posts = []
    for data, author_index in POSTS:
        payload = PostCreate(**data, author_id=users[author_index]["id"])
        posts.append(await post_service.create_post(db, payload))
    logger.info("Seeded posts: %d", len(posts))

    links = 0
    for post_index, tag_indexes in POST_TAGS:
        for tag_index in tag_indexes:
            if await tag_service.link_tag(db, posts[post_index]["id"], tags[tag_index]["id"]):
                links += 1
    logger.info("Seeded post/tag links: %d", links)

    comments = []
    for content, author_index, post_index in COMMENTS:
        payload = CommentCreate(content=content, author_id=users[author_index]["id"])
        comments.append(await comment_service.add_comment(db, posts[post_index]["id"], payload))

    replies = []
    for content, author_index, parent_index in REPLIES:
        parent = comments[parent_index]
        payload = CommentCreate(
            content=content,
            author_id=users[author_index]["id"],
            parent_id=parent["id"],
        )
        replies.append(await comment_service.add_comment(db, parent["post_id"], payload))
    logger.info("Seeded comments: %d (+%d replies)", len(comments), len(replies))

    return {
        "users": len(users),
        "tags": len(tags),
        "posts": len(posts),
        "post_tags": links,
        "comments": len(comments) + len(replies),
        "replies": [{"id": r["id"], "parent_id": r["parent_id"]} for r in replies],
    }


async def run_seed(database: Database) -> dict:
    """Wipe and repopulate inside a single transaction."""
    async with database.session() as session:
        async with session.begin():
            return await seed(session)
