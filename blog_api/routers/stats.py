from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.models import PostStatus
from blog_api.schemas import envelope
from blog_api.services import comment_service, post_service, tag_service, user_service

router = APIRouter(prefix="/api/v1/stats", tags=["stats"])


@router.get("")
async def get_stats(db: AsyncSession = Depends(get_db)):
    posts_by_status = {
        status.value: await post_service.count_posts_by_status(db, status)
        for status in PostStatus
    }
    return envelope(
        {
            "users": await user_service.count_users(db),
            "posts": await post_service.count_posts(db),
            "posts_by_status": posts_by_status,
            "tags": await tag_service.count_tags(db),
            "comments": await comment_service.count_comments(db),
        }
    )
