from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from starlette.datastructures import UploadFile

from app.core.deps import AuthorizationService
from app.core.enum import UserRole
from app.schemas.shares.courses import CreateCourse, ImportCourseText, UpdateCourse
from app.services.shares.courses import CoursesService

router = APIRouter(prefix="/courses", tags=["Courses"])

STAFF = [UserRole.ADMIN, UserRole.MANAGER]


@router.get("", status_code=status.HTTP_200_OK)
async def list_courses(
    search: Optional[str] = None,
    category: Optional[str] = None,
    level: Optional[str] = None,
    sort: Optional[str] = None,  # rating | enrolledCount | newest
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=1000),
    courses_service: CoursesService = Depends(CoursesService),
):
    return await courses_service.list_courses_async(
        search=search, category=category, level=level, sort=sort, page=page, limit=limit
    )


@router.get("/categories")
async def list_categories(courses_service: CoursesService = Depends(CoursesService)):
    return await courses_service.categories_async()


@router.get("/manage")
async def list_managed_courses(
    search: Optional[str] = None,
    category: Optional[str] = None,
    level: Optional[str] = None,
    sort: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=1000),
    courses_service: CoursesService = Depends(CoursesService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    actor = await authorization.require_role(STAFF)
    return await courses_service.list_managed_courses_async(
        actor, search=search, category=category, level=level, sort=sort, page=page, limit=limit
    )


@router.get("/manage/categories")
async def list_managed_categories(
    courses_service: CoursesService = Depends(CoursesService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    actor = await authorization.require_role(STAFF)
    return await courses_service.categories_async(actor)


@router.post("/import", status_code=status.HTTP_200_OK)
async def import_course(
    request: Request,
    courses_service: CoursesService = Depends(CoursesService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    """Parse a .txt upload (multipart field `file`) or a JSON {text} body into a course draft."""
    actor = await authorization.require_role(STAFF)

    if request.headers.get("content-type", "").startswith("multipart/form-data"):
        form = await request.form()
        file = form.get("file")
        if not isinstance(file, UploadFile):
            raise HTTPException(status_code=400, detail="No file uploaded")
        return await courses_service.import_course_async(actor, file=file)

    try:
        schema = ImportCourseText.model_validate(await request.json())
    except ValueError:
        raise HTTPException(
            status_code=400, detail="Send a .txt file or a JSON body with a text field"
        )
    return await courses_service.import_course_async(actor, text=schema.text)


@router.get("/{course_id}")
async def get_course(
    course_id: str,
    courses_service: CoursesService = Depends(CoursesService),
):
    return await courses_service.get_course_async(course_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_course(
    schema: CreateCourse = Body(),
    courses_service: CoursesService = Depends(CoursesService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    actor = await authorization.require_role(STAFF)
    return await courses_service.create_course_async(actor, schema)


@router.patch("/{course_id}")
async def update_course(
    course_id: str,
    schema: UpdateCourse = Body(),
    courses_service: CoursesService = Depends(CoursesService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    actor = await authorization.require_role(STAFF)
    return await courses_service.update_course_async(actor, course_id, schema)


@router.delete("/{course_id}")
async def delete_course(
    course_id: str,
    courses_service: CoursesService = Depends(CoursesService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    actor = await authorization.require_role(STAFF)
    return await courses_service.delete_course_async(actor, course_id)


@router.post("/{course_id}/enroll", status_code=status.HTTP_201_CREATED)
async def enroll(
    course_id: str,
    courses_service: CoursesService = Depends(CoursesService),
    authorization: AuthorizationService = Depends(AuthorizationService),
):
    learner = await authorization.require_role([UserRole.LEARNER])
    return await courses_service.enroll_async(learner, course_id)
