"""Wipe the database and load the development fixture data."""
import argparse
import asyncio
import logging
import sys

from blog_api.config import settings
from blog_api.database import build_database
from blog_api.errors import BlogError
from blog_api.logging_config import configure_logging
from blog_api.seed import run_seed

logger = logging.getLogger("blog_api.scripts.seed")


async def main_async() -> dict:
    database = build_database(settings)
    database.connect()
    try:
        return await run_seed(database)
    finally:
        await database.disconnect()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Delete ALL rows and load the fixture users, tags, posts and comments."
    )
    parser.parse_args(argv)
    configure_logging(settings.LOG_LEVEL)

    try:
        summary = asyncio.run(main_async())
    except BlogError:
        # Already logged by the service that raised it.
        return 1
    except Exception:
        logger.exception("Database seeding failed")
        return 1

    print("Database seeding summary:")
    print(f"  Users:     {summary['users']}")
    print(f"  Tags:      {summary['tags']}")
    print(f"  Posts:     {summary['posts']}")
    print(f"  Post tags: {summary['post_tags']}")
    print(f"  Comments:  {summary['comments']} (including replies)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
