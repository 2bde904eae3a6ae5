from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from app.core.deps import AuthorizationService
from app.core.enum import UserRole
from app.schemas.admin.user import AssignCourse, AssignLearner, CreateUser, UpdateUser
from app.services.admin.user import UserService

router = APIRouter(prefix="/users", tags=["Users"])

STAFF = [UserRole.ADMIN, UserRole.MANAGER]


@router.get("")
async def get_users(
    authorization: AuthorizationService = Depends(AuthorizationService),
    user_service: UserService = Depends(UserService),
    role: Optional[UserRole] = Query(None),
    department: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    actor = await authorization.require_role(STAFF)
    return await user_service.get_users_async(actor, role, department, page, limit)


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    authorization: AuthorizationService = Depends(AuthorizationService),
    user_service: UserService = Depends(UserService),
):
    await authorization.require_role(STAFF)
    return await user_service.get_user_async(user_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    schema: CreateUser = Body(),
    authorization: AuthorizationService = Depends(AuthorizationService),
    user_service: UserService = Depends(UserService),
):
    actor = await authorization.require_role(STAFF)
    return await user_service.create_user_async(actor, schema)


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    schema: UpdateUser = Body(),
    authorization: AuthorizationService = Depends(AuthorizationService),
    user_service: UserService = Depends(UserService),
):
    actor = await authorization.require_role(STAFF)
    return await user_service.update_user_async(actor, user_id, schema)


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    authorization: AuthorizationService = Depends(AuthorizationService),
    user_service: UserService = Depends(UserService),
):
    actor = await authorization.require_role(STAFF)
    return await user_service.delete_user_async(actor, user_id)


@router.get("/{user_id}/assigned-learners")
async def get_assigned_learners(
    user_id: str,
    authorization: AuthorizationService = Depends(AuthorizationService),
    user_service: UserService = Depends(UserService),
):
    actor = await authorization.require_role(STAFF)
    return await user_service.get_assigned_learners_async(actor, user_id)


@router.post("/{user_id}/assign-learner", status_code=status.HTTP_201_CREATED)
async def assign_learner(
    user_id: str,
    schema: AssignLearner = Body(),
    authorization: AuthorizationService = Depends(AuthorizationService),
    user_service: UserService = Depends(UserService),
):
    actor = await authorization.require_role(STAFF)
    return await user_service.assign_learner_async(actor, user_id, schema)


@router.post("/{user_id}/assign-course", status_code=status.HTTP_201_CREATED)
async def assign_course(
    user_id: str,
    schema: AssignCourse = Body(),
    authorization: AuthorizationService = Depends(AuthorizationService),
    user_service: UserService = Depends(UserService),
):
    actor = await authorization.require_role(STAFF)
    return await user_service.assign_course_async(actor, user_id, schema)
