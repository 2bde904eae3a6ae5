from typing import Any

from fastapi import Depends
from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.database import Notification
from app.db.session import get_session
from app.libs.formats.datetime import now as get_now
from app.libs.formats.datetime import to_utc_naive
from app.libs.formats.mappers import to_notification
from app.schemas.shares.notification import NotificationCreateSchema


class NotificationService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def get_notifications_async(self, role: str) -> list[dict[str, Any]]:
        """Unexpired notifications aimed at a role, newest first."""
        stmt = (
            select(Notification)
            .where(or_(Notification.expires_at.is_(None), Notification.expires_at > get_now()))
            .order_by(Notification.created_at.desc())
        )
        items = (await self.db.scalars(stmt)).all()
        # target_roles is a JSON list; membership is checked here to stay dialect-neutral
        return [to_notification(n) for n in items if role in (n.target_roles or [])]

    async def create_notification_async(self, schema: NotificationCreateSchema) -> dict[str, Any]:
        try:
            notification = Notification(
                type=schema.type.value,
                message=schema.message,
                target_roles=[r.value for r in schema.target_roles],
                expires_at=to_utc_naive(schema.expires_at),
            )
            self.db.add(notification)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"Notification {notification.id} created for {notification.target_roles}")
        return to_notification(notification)
