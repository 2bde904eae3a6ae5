from fastapi import APIRouter, Body, Depends, status

from app.core.deps import AuthorizationService
from app.core.enum import UserRole
from app.schemas.shares.notification import NotificationCreateSchema
from app.services.shares.notification import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def get_notifications(
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization_service.get_current_user()
    return await service.get_notifications_async(user.role)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_notification(
    schema: NotificationCreateSchema = Body(),
    service: NotificationService = Depends(NotificationService),
    authorization_service: AuthorizationService = Depends(AuthorizationService),
):
    await authorization_service.require_role([UserRole.ADMIN])
    return await service.create_notification_async(schema)
