"""
Schema migration commands, dispatched onto Alembic's command API.

    dev       autogenerate a revision from the models, then upgrade to head
    deploy    apply pending revisions (non-interactive, for production)
    reset     downgrade to base and upgrade again; destroys all data and
              refuses to run unless ``confirm=True``
    status    print the current revision and the available heads
    generate  autogenerate a revision script without applying it

Alembic exceptions are not caught here; ``scripts/migrate.py`` turns any
failure into a non-zero exit.
"""
import logging
from pathlib import Path
from typing import Callable

from alembic import command
from alembic.config import Config

from blog_api.errors import ResetNotConfirmedError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_INI = PROJECT_ROOT / "alembic.ini"


def alembic_config(ini_path: str | Path = DEFAULT_INI) -> Config:
    cfg = Config(str(ini_path))
    # Resolve script_location against the ini file so the CLI works from any cwd.
    cfg.set_main_option("script_location", str(Path(ini_path).resolve().parent / "alembic"))
    return cfg


def _dev(cfg: Config, *, message: str | None, confirm: bool) -> None:
    logger.info("Creating and applying migration for development")
    command.revision(cfg, message=message or "dev migration", autogenerate=True)
    command.upgrade(cfg, "head")


def _deploy(cfg: Config, *, message: str | None, confirm: bool) -> None:
    logger.info("Applying pending migrations")
    command.upgrade(cfg, "head")


def _reset(cfg: Config, *, message: str | None, confirm: bool) -> None:
    if not confirm:
        raise ResetNotConfirmedError(
            "reset drops every table and all data; pass --yes to confirm"
        )
    logger.warning("Resetting database: all data will be deleted")
    command.downgrade(cfg, "base")
    command.upgrade(cfg, "head")


def _status(cfg: Config, *, message: str | None, confirm: bool) -> None:
    logger.info("Checking migration status")
    command.current(cfg, verbose=True)
    command.heads(cfg, verbose=True)


def _generate(cfg: Config, *, message: str | None, confirm: bool) -> None:
    logger.info("Generating migration script from models")
    command.revision(cfg, message=message or "autogenerated", autogenerate=True)


COMMANDS: dict[str, Callable[..., None]] = {
    "dev": _dev,
    "deploy": _deploy,
    "reset": _reset,
    "status": _status,
    "generate": _generate,
}


def run(name: str, cfg: Config | None = None, *, confirm: bool = False, message: str | None = None) -> None:
    """Run migration command *name*; raises ValueError for an unknown name."""
    try:
        handler = COMMANDS[name]
    except KeyError:
        raise ValueError(f"Unknown migration command {name!r}; expected one of {', '.join(COMMANDS)}") from None

    logger.info("Starting %s migration", name)
    handler(cfg or alembic_config(), message=message, confirm=confirm)
    logger.info("%s migration completed", name)
