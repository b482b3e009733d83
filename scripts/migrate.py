"""Apply, inspect or reset the database schema (wraps Alembic)."""
import argparse
import logging
import sys

from blog_api import migrations
from blog_api.config import settings
from blog_api.errors import BlogError
from blog_api.logging_config import configure_logging

logger = logging.getLogger("blog_api.scripts.migrate")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Database migrations")
    parser.add_argument(
        "command",
        nargs="?",
        default="dev",
        choices=list(migrations.COMMANDS),
        help="dev (default): generate + apply; deploy: apply pending; "
        "reset: drop everything and re-apply (needs --yes); "
        "status: show revisions; generate: write a revision without applying",
    )
    parser.add_argument("-m", "--message", help="Revision message for dev/generate")
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm a destructive reset",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.LOG_LEVEL)

    try:
        migrations.run(args.command, confirm=args.yes, message=args.message)
    except BlogError as exc:
        logger.error("%s migration refused: %s", args.command, exc)
        return 1
    except Exception:
        logger.exception("%s migration failed", args.command)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
