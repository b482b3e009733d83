"""
Seed workflow tests, run against the per-test in-memory database, plus
the exit codes and logging of the seed CLI.
"""
import importlib.util
import logging
from pathlib import Path

import pytest
from sqlalchemy import func, select

from blog_api import migrations
from blog_api.database import Database
from blog_api.errors import ConflictError
from blog_api.models import Comment, Post, PostStatus, PostTag, Tag, User
from blog_api.seed import COMMENTS, REPLIES, run_seed, seed
from blog_api.services import comment_service, post_service
from blog_api.services.telemetry import logged


async def _count(database: Database, model) -> int:
    async with database.session() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_seed_creates_fixture_data(database: Database):
    summary = await run_seed(database)

    assert summary["users"] == 3
    assert summary["tags"] == 5
    assert summary["posts"] == 4
    assert summary["post_tags"] == 8
    assert summary["comments"] == len(COMMENTS) + len(REPLIES) == 5

    assert await _count(database, User) == 3
    assert await _count(database, Tag) == 5
    assert await _count(database, Post) == 4
    assert await _count(database, PostTag) == 8
    assert await _count(database, Comment) == 5


@pytest.mark.asyncio
async def test_seed_post_statuses(database: Database):
    await run_seed(database)
    async with database.session() as session:
        assert await post_service.count_posts_by_status(session, PostStatus.PUBLISHED) == 3
        assert await post_service.count_posts_by_status(session, PostStatus.DRAFT) == 1
        assert await post_service.count_posts_by_status(session, PostStatus.ARCHIVED) == 0


@pytest.mark.asyncio
async def test_seed_reply_targets_fourth_comment(database: Database):
    summary = await run_seed(database)
    reply = summary["replies"][0]

    async with database.session() as session:
        comments = (
            await session.execute(
                select(Comment).where(Comment.parent_id.is_(None)).order_by(Comment.id)
            )
        ).scalars().all()
        posts = (await session.execute(select(Post).order_by(Post.id))).scalars().all()

        assert reply["parent_id"] == comments[3].id
        assert comments[3].post_id == posts[1].id

        thread = await comment_service.get_comment_thread(session, posts[1].id)
        parent = next(c for c in thread if c["id"] == comments[3].id)
        assert [r["id"] for r in parent["replies"]] == [reply["id"]]
        assert parent["replies"][0]["depth"] == 1


@pytest.mark.asyncio
async def test_seed_without_wipe_conflicts(database: Database):
    await run_seed(database)

    async with database.session() as session:
        with pytest.raises(ConflictError):
            await seed(session, wipe_first=False)
        await session.rollback()

    assert await _count(database, User) == 3


@pytest.mark.asyncio
async def test_seed_rerun_with_wipe_replaces_data(database: Database):
    await run_seed(database)
    summary = await run_seed(database)

    assert summary["users"] == 3
    assert await _count(database, User) == 3
    assert await _count(database, Post) == 4
    assert await _count(database, Comment) == 5


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

SEED_SCRIPT = Path(migrations.PROJECT_ROOT) / "scripts" / "seed.py"


def _load_seed_script():
    spec = importlib.util.spec_from_file_location("seed_script", SEED_SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def seed_script(monkeypatch):
    module = _load_seed_script()
    monkeypatch.setattr(module, "configure_logging", lambda level: None)
    monkeypatch.setattr(module, "build_database", lambda settings: Database("sqlite+aiosqlite:///:memory:"))
    return module


def test_cli_domain_failure_is_logged_once(seed_script, monkeypatch, caplog):
    @logged("SeedService", "seed")
    async def refuse(database):
        raise ConflictError("Email or username already exists")

    monkeypatch.setattr(seed_script, "run_seed", refuse)
    caplog.set_level(logging.INFO)

    assert seed_script.main([]) == 1
    failures = [r for r in caplog.records if "failed" in r.getMessage()]
    assert [r.levelno for r in failures] == [logging.WARNING]
    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]


def test_cli_unexpected_failure_keeps_traceback(seed_script, monkeypatch, caplog):
    async def explode(database):
        raise RuntimeError("disk full")

    monkeypatch.setattr(seed_script, "run_seed", explode)

    assert seed_script.main([]) == 1
    errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
    assert [r.getMessage() for r in errors] == ["Database seeding failed"]
    assert errors[0].exc_info is not None
