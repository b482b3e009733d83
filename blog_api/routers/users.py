from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.schemas import UserCreate, envelope
from blog_api.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("")
async def list_users(db: AsyncSession = Depends(get_db)):
    users = await user_service.get_users(db)
    return envelope(users, count=len(users))


@router.get("/{user_id}")
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await user_service.get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return envelope(user)


@router.post("", status_code=201)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    # ConflictError propagates to the 409 handler in main.
    user = await user_service.create_user(db, data)
    return envelope(user, message="User created successfully")
