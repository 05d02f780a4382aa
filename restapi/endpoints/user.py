"""User endpoints for the API."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.init_db import get_db
from components.user.repository import UserRepository
from components.user import schemas
from components.user.models import User
from components.user.utils import can_view_client
from restapi.endpoints.auth import get_current_user, require_admin

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=schemas.User)
async def create_user(
    user: schemas.UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Create a new client or admin account."""
    repo = UserRepository(db)

    if await repo.exists(user.email):
        raise HTTPException(
            status_code=400,
            detail="User with this email already exists"
        )

    return await repo.create(user)


@router.get("/me", response_model=schemas.User)
async def read_current_user(current_user: User = Depends(get_current_user)):
    """Get the authenticated user."""
    return current_user


@router.get("/{user_id}", response_model=schemas.User)
async def read_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Get a specific user by ID."""
    user = await UserRepository(db).get_by_id(user_id)
    if user is None or not can_view_client(current_user, user_id):
        raise HTTPException(status_code=404, detail="User not found")
    return user
