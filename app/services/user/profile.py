from typing import Any

from fastapi import Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.database import User
from app.db.session import get_session
from app.libs.formats.mappers import USER_LOAD, to_user
from app.schemas.user.profile import ProfileUpdate


class ProfileService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def get_me_async(self, user_id: str) -> dict[str, Any]:
        user = await self.db.scalar(
            select(User)
            .options(*USER_LOAD)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return to_user(user)

    async def update_profile_async(self, user: User, schema: ProfileUpdate) -> dict[str, Any]:
        try:
            for key, value in schema.model_dump(exclude_unset=True).items():
                if key == "name" and value is None:
                    continue
                setattr(user, key, value)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return await self.get_me_async(user.id)
