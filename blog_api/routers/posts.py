from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.schemas import CommentCreate, PostCreate, envelope
from blog_api.services import comment_service, post_service, tag_service

router = APIRouter(prefix="/api/v1/posts", tags=["posts"])


@router.get("")
async def list_posts(db: AsyncSession = Depends(get_db)):
    posts = await post_service.get_posts(db)
    count = await post_service.count_posts(db)
    return envelope(posts, count=count)


@router.get("/{post_id}")
async def get_post(post_id: int, db: AsyncSession = Depends(get_db)):
    post = await post_service.get_post(db, post_id)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return envelope(post)


@router.post("", status_code=201)
async def create_post(data: PostCreate, db: AsyncSession = Depends(get_db)):
    post = await post_service.create_post(db, data)
    return envelope(post, message="Post created successfully")


@router.get("/{post_id}/comments")
async def list_comments(post_id: int, db: AsyncSession = Depends(get_db)):
    comments = await comment_service.get_comments(db, post_id)
    if comments is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return envelope(comments, count=len(comments))


@router.get("/{post_id}/comments/thread")
async def comment_thread(post_id: int, db: AsyncSession = Depends(get_db)):
    thread = await comment_service.get_comment_thread(db, post_id)
    if thread is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return envelope(thread, count=len(thread))


@router.post("/{post_id}/comments", status_code=201)
async def add_comment(post_id: int, data: CommentCreate, db: AsyncSession = Depends(get_db)):
    comment = await comment_service.add_comment(db, post_id, data)
    if comment is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return envelope(comment, message="Comment created successfully")


@router.get("/{post_id}/tags")
async def list_post_tags(post_id: int, db: AsyncSession = Depends(get_db)):
    tags = await tag_service.get_post_tags(db, post_id)
    if tags is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return envelope(tags, count=len(tags))


@router.put("/{post_id}/tags/{tag_id}")
async def link_tag(post_id: int, tag_id: int, response: Response, db: AsyncSession = Depends(get_db)):
    linked = await tag_service.link_tag(db, post_id, tag_id)
    if linked is None:
        raise HTTPException(status_code=404, detail="Post or tag not found")
    if linked:
        response.status_code = 201
        return envelope({"post_id": post_id, "tag_id": tag_id}, message="Tag linked")
    return envelope({"post_id": post_id, "tag_id": tag_id}, message="Tag already linked")
