"""
Domain errors raised by the service layer.

"Not found" has no class here: lookups return ``None`` and callers
check for it.  Anything that is not one of these classes is treated as an
unknown failure and propagates as-is.
"""


class BlogError(Exception):
    """Base class for errors the HTTP layer knows how to render."""


class ConflictError(BlogError):
    """A uniqueness constraint would be violated (email, username, slug)."""


class InvalidReferenceError(BlogError):
    """A referenced row is missing or belongs to a different parent."""

    def __init__(self, resource: str, identifier: int, reason: str = "does not exist"):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} {reason}")


class ResetNotConfirmedError(BlogError):
    """A destructive database reset was requested without confirmation."""


class InvalidSlugError(BlogError):
    """No usable slug can be derived from a title or name."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Cannot derive a slug from {source!r}; provide one explicitly")
