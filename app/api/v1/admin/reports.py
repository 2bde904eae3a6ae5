from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.deps import AuthorizationService
from app.core.enum import UserRole
from app.services.admin.reports import ReportsService

router = APIRouter(prefix="/reports", tags=["Reports"])

STAFF = [UserRole.ADMIN, UserRole.MANAGER]


@router.get("/overview")
async def overview(
    manager_id: Optional[str] = Query(None, alias="managerId"),
    reports_service: ReportsService = Depends(ReportsService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    actor = await authorization.require_role(STAFF)
    return await reports_service.overview_async(actor, manager_id)


@router.get("/learners")
async def learners(
    manager_id: Optional[str] = Query(None, alias="managerId"),
    reports_service: ReportsService = Depends(ReportsService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    actor = await authorization.require_role(STAFF)
    return await reports_service.learners_async(actor, manager_id)


@router.get("/courses")
async def courses(
    reports_service: ReportsService = Depends(ReportsService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    actor = await authorization.require_role(STAFF)
    return await reports_service.courses_async(actor)
