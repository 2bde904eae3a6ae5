from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger
from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import UserRole
from app.core.security import SecurityService
from app.db.models.database import Course, User
from app.db.session import get_session
from app.libs.formats.mappers import USER_LOAD, to_user
from app.schemas.admin.user import AssignCourse, AssignLearner, CreateUser, UpdateUser
from app.services.shares.courses import CoursesService

DEFAULT_PASSWORD = "pass1234"


class UserService:
    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        courses: CoursesService = Depends(CoursesService),
    ):
        self.db = db
        self.courses = courses

    async def _load_user(self, user_id: str) -> Optional[User]:
        return await self.db.scalar(
            select(User)
            .options(*USER_LOAD)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )

    async def _ensure_email_free(self, email: str, exclude_id: Optional[str] = None):
        stmt = select(User.id).where(User.email == email)
        if exclude_id:
            stmt = stmt.where(User.id != exclude_id)
        if await self.db.scalar(stmt):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="An account with this email already exists",
            )

    async def get_users_async(
        self,
        actor: User,
        role: Optional[UserRole],
        department: Optional[str],
        page: int,
        limit: int,
    ) -> dict[str, Any]:
        filters = []
        if role:
            filters.append(User.role == role.value)
        if department:
            filters.append(User.department == department)
        if actor.role == UserRole.MANAGER.value:
            filters.append(User.role != UserRole.ADMIN.value)

        stmt = (
            select(User)
            .options(*USER_LOAD)
            .where(*filters)
            .order_by(desc(User.created_at), desc(User.id))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        items = (await self.db.scalars(stmt)).all()
        total = await self.db.scalar(select(func.count()).select_from(User).where(*filters))
        return {
            "data": [to_user(u) for u in items],
            "pagination": {"page": page, "limit": limit, "total": total or 0},
        }

    async def get_user_async(self, user_id: str) -> dict[str, Any]:
        user = await self._load_user(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return to_user(user)

    async def create_user_async(self, actor: User, schema: CreateUser) -> dict[str, Any]:
        if actor.role == UserRole.MANAGER.value and schema.role == UserRole.ADMIN:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Managers cannot create Admin accounts",
            )
        email = schema.email.lower()
        try:
            await self._ensure_email_free(email)
            user = User(
                name=schema.name,
                email=email,
                role=schema.role.value,
                department=schema.department,
                total_cpd_points=0,
                can_switch_to_learner_view=(
                    bool(schema.can_switch_to_learner_view) if schema.role == UserRole.ADMIN else False
                ),
                password_hash=SecurityService.hash_password(schema.password or DEFAULT_PASSWORD),
                # accounts created by staff do not go through email verification
                is_email_verified=True,
            )
            self.db.add(user)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"{actor.email} created {user.role} account {email}")
        return to_user(await self._load_user(user.id))

    async def update_user_async(
        self, actor: User, user_id: str, schema: UpdateUser
    ) -> dict[str, Any]:
        user = await self._load_user(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        if actor.role == UserRole.MANAGER.value:
            if user.role == UserRole.ADMIN.value:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Managers cannot update Admin accounts",
                )
            if schema.role == UserRole.ADMIN:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Managers cannot promote to Admin",
                )

        try:
            if schema.name:
                user.name = schema.name
            if schema.email:
                email = schema.email.lower()
                await self._ensure_email_free(email, exclude_id=user.id)
                user.email = email
            if "department" in schema.model_fields_set:
                user.department = schema.department
            if schema.role:
                user.role = schema.role.value
                if schema.role != UserRole.LEARNER:
                    user.total_cpd_points = 0
            if schema.can_switch_to_learner_view is not None:
                user.can_switch_to_learner_view = (
                    schema.can_switch_to_learner_view if user.role == UserRole.ADMIN.value else False
                )
            if schema.password:
                user.password_hash = SecurityService.hash_password(schema.password)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return to_user(await self._load_user(user_id))

    async def delete_user_async(self, actor: User, user_id: str) -> dict[str, bool]:
        target = await self.db.get(User, user_id)
        if not target:
            raise HTTPException(status_code=404, detail="User not found")
        if target.role == UserRole.ADMIN.value and actor.role != UserRole.ADMIN.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only Admins can delete Admin accounts",
            )
        if actor.role == UserRole.MANAGER.value and target.id == actor.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Managers cannot delete their own account",
            )

        try:
            await self.db.delete(target)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info(f"{actor.email} deleted account {target.email}")
        return {"success": True}

    # ==============================
    # 🧩 MANAGER ASSIGNMENTS
    # ==============================

    async def get_assigned_learners_async(self, actor: User, manager_id: str) -> list[dict[str, Any]]:
        if actor.role == UserRole.MANAGER.value and actor.id != manager_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Managers can only view their own assigned learners",
            )
        learners = (
            await self.db.scalars(
                select(User)
                .options(*USER_LOAD)
                .where(User.assigned_manager_id == manager_id, User.role == UserRole.LEARNER.value)
                .order_by(User.name)
            )
        ).all()
        return [to_user(u) for u in learners]

    async def assign_learner_async(
        self, actor: User, manager_id: str, schema: AssignLearner
    ) -> dict[str, bool]:
        if manager_id != schema.manager_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Manager id in path must match request body",
            )
        if actor.role == UserRole.MANAGER.value and schema.manager_id != actor.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Managers can only assign learners to themselves",
            )

        manager = await self.db.get(User, schema.manager_id)
        if not manager or manager.role != UserRole.MANAGER.value:
            raise HTTPException(status_code=404, detail="Manager not found")
        learner = await self.db.get(User, schema.learner_id)
        if not learner or learner.role != UserRole.LEARNER.value:
            raise HTTPException(status_code=404, detail="Learner not found")

        try:
            learner.assigned_manager_id = manager.id
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return {"success": True}

    async def assign_course_async(
        self, actor: User, manager_id: str, schema: AssignCourse
    ) -> dict[str, bool]:
        if actor.role == UserRole.MANAGER.value and manager_id != actor.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Managers can only assign courses under their own account path",
            )

        learner = await self.db.get(User, schema.learner_id)
        if not learner or learner.role != UserRole.LEARNER.value:
            raise HTTPException(status_code=404, detail="Learner not found")
        course = await self.db.get(Course, schema.course_id)
        if not course:
            raise HTTPException(status_code=404, detail="Course not found")

        if actor.role == UserRole.MANAGER.value:
            if learner.assigned_manager_id != actor.id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Managers can only assign courses to their own learners",
                )
            if course.assigned_manager_id != actor.id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="Managers can only assign courses they manage",
                )

        await self.courses.enroll_user_async(learner.id, course.id)
        return {"success": True}
