from typing import Any

from pydantic import BaseModel, EmailStr, Field, HttpUrl

from blog_api.models import PostStatus

_SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


# --- User ---

class UserCreate(BaseModel):
    email: EmailStr
    # Length is only enforced here; user_service.create_user trusts its input.
    username: str = Field(min_length=3, max_length=100)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    bio: str | None = None
    avatar_url: HttpUrl | None = None
    is_admin: bool = False


# --- Tag ---

class TagCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=120, pattern=_SLUG_PATTERN)
    description: str | None = None
    color: str = Field("#6B7280", pattern=r"^#[0-9A-Fa-f]{6}$")


# --- Post ---

class PostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    slug: str | None = Field(None, max_length=350, pattern=_SLUG_PATTERN)
    content: str | None = None
    excerpt: str | None = Field(None, max_length=500)
    status: PostStatus | None = None
    author_id: int
    view_count: int = Field(0, ge=0)
    like_count: int = Field(0, ge=0)


# --- Comment ---

class CommentCreate(BaseModel):
    content: str = Field(min_length=1)
    author_id: int
    parent_id: int | None = None


# --- Envelope: {success, data, error, count, message} ---

def envelope(data: Any = None, *, count: int | None = None, message: str | None = None) -> dict:
    body: dict[str, Any] = {"success": True, "data": data}
    if count is not None:
        body["count"] = count
    if message is not None:
        body["message"] = message
    return body


def error_envelope(error: str, **extra: Any) -> dict:
    return {"success": False, "error": error, **extra}
