"""Repository for user operations."""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.security import get_password_hash
from components.user.models import USER_TYPE_CLIENT, User
from components.user.schemas import UserCreate


class UserRepository:
    """Repository for user operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def create(self, user: UserCreate) -> User:
        """Create a new user."""
        db_user = User(
            email=user.email,
            password=get_password_hash(user.password),
            full_name=user.full_name,
            mobile=user.mobile,
            user_type=user.user_type,
        )
        self.session.add(db_user)
        await self.session.commit()
        await self.session.refresh(db_user)
        return db_user

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        result = await self.session.execute(
            select(User).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email."""
        result = await self.session.execute(
            select(User).where(User.email == email)
        )
        return result.scalar_one_or_none()

    async def get_by_ids(self, user_ids) -> dict:
        """Map user ID to user for the given IDs."""
        ids = set(user_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(User).where(User.id.in_(ids))
        )
        return {user.id: user for user in result.scalars().all()}

    async def get_clients(self, skip: int = 0, limit: int = 100) -> List[User]:
        """Get client users ordered by name."""
        result = await self.session.execute(
            select(User)
            .where(User.user_type == USER_TYPE_CLIENT)
            .order_by(User.full_name, User.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def exists(self, email: str) -> bool:
        """Check if user with given email exists."""
        result = await self.session.execute(
            select(User.id).where(User.email == email)
        )
        return result.scalar_one_or_none() is not None
