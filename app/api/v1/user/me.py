from fastapi import APIRouter, Body, Depends, status

from app.core.deps import AuthorizationService
from app.core.enum import UserRole
from app.schemas.user.learning import CompleteCourse, SubmitAssignment, UpdateProgress
from app.schemas.user.profile import ProfileUpdate
from app.services.user.learning import LearningService
from app.services.user.profile import ProfileService

router = APIRouter(prefix="/me", tags=["Me"])


@router.get("")
async def get_me(
    profile_service: ProfileService = Depends(ProfileService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await profile_service.get_me_async(user.id)


@router.patch("/profile")
async def update_profile(
    schema: ProfileUpdate = Body(),
    profile_service: ProfileService = Depends(ProfileService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.get_current_user()
    return await profile_service.update_profile_async(user, schema)


@router.get("/progress")
async def get_progress(
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.require_role([UserRole.LEARNER])
    return await learning_service.get_progress_async(user)


@router.put("/progress/{course_id}")
async def update_progress(
    course_id: str,
    schema: UpdateProgress = Body(),
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.require_role([UserRole.LEARNER])
    return await learning_service.update_progress_async(user, course_id, schema)


@router.post("/complete-course", status_code=status.HTTP_201_CREATED)
async def complete_course(
    schema: CompleteCourse = Body(),
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.require_role([UserRole.LEARNER])
    return await learning_service.complete_course_async(user, schema)


@router.get("/certificates")
async def get_certificates(
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.require_role([UserRole.LEARNER])
    return await learning_service.get_certificates_async(user)


@router.get("/assignments/{module_id}")
async def get_assignment_submission(
    module_id: str,
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.require_role([UserRole.LEARNER])
    return await learning_service.get_submission_async(user, module_id)


@router.post("/assignments/submit", status_code=status.HTTP_201_CREATED)
async def submit_assignment(
    schema: SubmitAssignment = Body(),
    learning_service: LearningService = Depends(LearningService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    user = await authorization.require_role([UserRole.LEARNER])
    return await learning_service.submit_assignment_async(user, schema)
