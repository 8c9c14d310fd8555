import logging
from typing import Optional

from fastcrud import FastCRUD
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from marketplace.users.models import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Accès aux utilisateurs."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.crud = FastCRUD(User)

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def add(self, user: User) -> User:
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        logger.debug(f"[UserRepository] User ID {user.id} flushed.")
        return user
