from typing import Any, Optional

from fastapi import Depends, HTTPException, UploadFile, status
from loguru import logger
from sqlalchemy import ColumnElement, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import UserRole
from app.db.models.database import Course, Module, Progress, QuizQuestion, User
from app.db.session import get_session
from app.libs.formats.mappers import COURSE_LOAD, to_course, to_progress
from app.schemas.shares.courses import CreateCourse, ModuleIn, UpdateCourse
from app.services.shares.course_import import parse_course_text

SORT_COLUMNS = {
    "rating": Course.rating,
    "enrolledCount": Course.enrolled_count,
}


def build_modules(modules: list[ModuleIn], keep_ids: bool) -> list[Module]:
    """ORM modules in list order; quiz questions nested the same way."""
    built = []
    for position, m in enumerate(modules):
        module = Module(
            title=m.title,
            type=m.type.value,
            content=m.content,
            slides_url=m.slides_url,
            duration=m.duration,
            completed=m.completed,
            position=position,
        )
        for q_position, q in enumerate(m.questions or []):
            question = QuizQuestion(
                question=q.question,
                options=list(q.options),
                correct_answer=q.correct_answer,
                position=q_position,
            )
            if keep_ids and q.id:
                question.id = q.id
            module.questions.append(question)
        if keep_ids and m.id:
            module.id = m.id
        built.append(module)
    return built


class CoursesService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    # ==============================
    # 🧩 SCOPE
    # ==============================

    @staticmethod
    def actor_course_scope(actor: User) -> Optional[ColumnElement[bool]]:
        """Courses an actor manages; None means every course."""
        if actor.role == UserRole.ADMIN.value:
            return None
        if actor.role == UserRole.MANAGER.value:
            return Course.assigned_manager_id == actor.id
        return or_(Course.instructor == actor.name, Course.instructor == actor.email)

    @staticmethod
    def _filters(
        search: Optional[str], category: Optional[str], level: Optional[str]
    ) -> list[ColumnElement[bool]]:
        filters = []
        if search:
            filters.append(
                or_(
                    Course.title.icontains(search, autoescape=True),
                    Course.description.icontains(search, autoescape=True),
                    Course.category.icontains(search, autoescape=True),
                )
            )
        if category:
            filters.append(Course.category == category)
        if level:
            filters.append(Course.level == level)
        return filters

    async def _load_course(self, course_id: str) -> Optional[Course]:
        return await self.db.scalar(
            select(Course)
            .options(*COURSE_LOAD)
            .where(Course.id == course_id)
            .execution_options(populate_existing=True)
        )

    # ==============================
    # 🧩 READ
    # ==============================

    async def list_courses_async(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        level: Optional[str] = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        scope: Optional[ColumnElement[bool]] = None,
    ) -> dict[str, Any]:
        filters = self._filters(search, category, level)
        if scope is not None:
            filters.append(scope)

        order_column = SORT_COLUMNS.get(sort or "", Course.created_at)
        stmt = (
            select(Course)
            .options(*COURSE_LOAD)
            .where(*filters)
            .order_by(desc(order_column), desc(Course.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        items = (await self.db.scalars(stmt)).all()
        total = await self.db.scalar(select(func.count()).select_from(Course).where(*filters))

        return {
            "data": [to_course(c) for c in items],
            "pagination": {"page": page, "limit": limit, "total": total or 0},
        }

    async def list_managed_courses_async(self, actor: User, **query) -> dict[str, Any]:
        return await self.list_courses_async(scope=self.actor_course_scope(actor), **query)

    async def categories_async(self, actor: Optional[User] = None) -> list[str]:
        stmt = select(Course.category).distinct().order_by(Course.category)
        if actor is not None:
            scope = self.actor_course_scope(actor)
            if scope is not None:
                stmt = stmt.where(scope)
        rows = (await self.db.scalars(stmt)).all()
        return ["All", *rows]

    async def get_course_async(self, course_id: str) -> dict[str, Any]:
        course = await self._load_course(course_id)
        if not course:
            raise HTTPException(status_code=404, detail="Course not found")
        return to_course(course)

    # ==============================
    # 🧩 WRITE
    # ==============================

    async def create_course_async(self, actor: User, schema: CreateCourse) -> dict[str, Any]:
        data = schema.model_dump(mode="json", exclude={"modules"})
        if actor.role == UserRole.ADMIN.value:
            data["instructor"] = actor.name or actor.email
        if actor.role == UserRole.MANAGER.value:
            if schema.assigned_manager_id and schema.assigned_manager_id != actor.id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Managers can only create courses assigned to themselves",
                )
            data["assigned_manager_id"] = actor.id

        try:
            course = Course(
                **data,
                modules=build_modules(schema.modules, keep_ids=False),
            )
            self.db.add(course)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Course {course.id} created by {actor.email}")
        return to_course(await self._load_course(course.id))

    async def update_course_async(
        self, actor: User, course_id: str, schema: UpdateCourse
    ) -> dict[str, Any]:
        course = await self._load_course(course_id)
        if not course:
            raise HTTPException(status_code=404, detail="Course not found")

        changes = {
            key: value
            for key, value in schema.model_dump(mode="json", exclude_unset=True, exclude={"modules"}).items()
            if value is not None or key == "assigned_manager_id"
        }
        if actor.role == UserRole.MANAGER.value:
            if course.assigned_manager_id != actor.id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Managers can only update courses they manage",
                )
            if changes.get("assigned_manager_id") and changes["assigned_manager_id"] != actor.id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Managers cannot reassign course ownership",
                )
            changes["assigned_manager_id"] = actor.id
        if actor.role == UserRole.ADMIN.value:
            if course.instructor not in (actor.name, actor.email):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Instructors can only update courses they manage",
                )
            changes["instructor"] = actor.name or actor.email

        try:
            for key, value in changes.items():
                setattr(course, key, value)

            if schema.modules is not None:
                # old rows must be gone before ids are reused
                course.modules.clear()
                await self.db.flush()
                course.modules.extend(build_modules(schema.modules, keep_ids=True))

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return to_course(await self._load_course(course_id))

    async def delete_course_async(self, actor: User, course_id: str) -> dict[str, bool]:
        course = await self.db.get(Course, course_id)
        if not course:
            raise HTTPException(status_code=404, detail="Course not found")
        if actor.role == UserRole.MANAGER.value and course.assigned_manager_id != actor.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Managers can only delete courses they manage",
            )
        if actor.role not in (UserRole.ADMIN.value, UserRole.MANAGER.value):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to delete courses",
            )

        try:
            await self.db.delete(course)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"Course {course_id} deleted by {actor.email}")
        return {"success": True}

    # ==============================
    # 🧩 ENROLLMENT
    # ==============================

    async def enroll_async(self, actor: User, course_id: str) -> dict[str, Any]:
        if actor.role == UserRole.ADMIN.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Instructors cannot enroll in courses",
            )
        progress = await self.enroll_user_async(actor.id, course_id)
        return to_progress(progress)

    async def enroll_user_async(self, user_id: str, course_id: str) -> Progress:
        """Return the user's progress for a course, creating it on first enrollment."""
        try:
            existing = await self.db.scalar(
                select(Progress).where(Progress.user_id == user_id, Progress.course_id == course_id)
            )
            if existing:
                return existing

            if not await self.db.scalar(select(Course.id).where(Course.id == course_id)):
                raise HTTPException(status_code=404, detail="Course not found")
            if not await self.db.scalar(select(User.id).where(User.id == user_id)):
                raise HTTPException(status_code=404, detail="User not found")

            await self.db.execute(
                update(Course)
                .where(Course.id == course_id)
                .values(enrolled_count=Course.enrolled_count + 1)
            )
            progress = Progress(
                user_id=user_id,
                course_id=course_id,
                progress=0,
                last_module_index=0,
                quiz_scores={},
            )
            self.db.add(progress)
            await self.db.commit()
            return progress
        except Exception:
            await self.db.rollback()
            raise

    # ==============================
    # 🧩 IMPORT
    # ==============================

    async def import_course_async(
        self,
        actor: User,
        file: Optional[UploadFile] = None,
        text: Optional[str] = None,
    ) -> dict[str, Any]:
        if file is not None:
            filename = (file.filename or "").lower()
            if not filename.endswith(".txt") and file.content_type != "text/plain":
                raise HTTPException(status_code=400, detail="Only .txt course files can be imported")
            text = (await file.read()).decode("utf-8-sig", errors="replace")

        if not text or not text.strip():
            raise HTTPException(status_code=400, detail="Course text is empty")

        draft = parse_course_text(text, actor.name or actor.email)
        logger.info(f"Parsed course draft '{draft['title']}' with {len(draft['modules'])} modules")
        return draft
