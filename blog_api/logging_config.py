import logging

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stream handler on the root logger.

    Safe to call more than once (the lifespan and the CLI entry points
    both call it); repeated calls only adjust the level.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(h, "_blog_api", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._blog_api = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    # Uvicorn installs its own handlers; keep its access log from doubling ours.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
