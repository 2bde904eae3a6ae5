# app/core/deps.py
from typing import List, Optional

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.context import get_request
from app.core.enum import UserRole
from app.core.security import SecurityService
from app.db.models.database import User
from app.db.session import get_session


class AuthorizationService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        security: SecurityService = Depends(SecurityService),
    ):
        self.db = db
        self.security = security

    # ==============================
    # 🧩 CORE AUTH CHECKS
    # ==============================

    @staticmethod
    def _extract_token() -> Optional[str]:
        """Bearer header first, then the access_token cookie."""
        request = get_request()
        header = request.headers.get("authorization")
        if header and header.lower().startswith("bearer "):
            return header.split(" ", 1)[1].strip() or None
        return request.cookies.get("access_token")

    async def get_current_user(self) -> User:
        token = self._extract_token()
        if not token:
            raise HTTPException(status_code=401, detail="Unauthorized")

        try:
            payload = self.security.decode_access_token(token)
        except ValueError as e:
            logger.debug(f"Rejected access token: {e}")
            raise HTTPException(status_code=401, detail="Unauthorized")

        user_id = payload.get("sub")
        if not user_id:
            raise HTTPException(status_code=401, detail="Unauthorized")

        user = await self.db.scalar(select(User).where(User.id == user_id))
        if not user:
            raise HTTPException(status_code=401, detail="Unauthorized")
        return user

    # ==============================
    # 🧩 ROLE-BASED ACCESS CONTROL
    # ==============================

    async def require_role(self, required_roles: Optional[List[UserRole]] = None) -> User:
        current_user = await self.get_current_user()

        if not required_roles:
            return current_user

        if current_user.role not in {r.value for r in required_roles}:
            raise HTTPException(status_code=403, detail="Insufficient permissions")

        return current_user
