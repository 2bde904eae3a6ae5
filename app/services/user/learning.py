from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from loguru import logger
from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import ModuleType
from app.db.models.database import AssignmentSubmission, Certificate, Course, Module, Progress, User
from app.db.session import get_session
from app.libs.formats.datetime import now as get_now
from app.libs.formats.datetime import to_utc_naive
from app.libs.formats.mappers import to_certificate, to_progress, to_submission
from app.schemas.user.learning import CompleteCourse, SubmitAssignment, UpdateProgress
from app.services.user.profile import ProfileService


class LearningService:
    """Progress, completion and assignment work of the signed-in learner."""

    def __init__(
        self,
        db: AsyncSession = Depends(get_session),
        profile: ProfileService = Depends(ProfileService),
    ):
        self.db = db
        self.profile = profile

    async def _get_progress(self, user_id: str, course_id: str) -> Optional[Progress]:
        return await self.db.scalar(
            select(Progress).where(Progress.user_id == user_id, Progress.course_id == course_id)
        )

    async def _require_course(self, course_id: str):
        if not await self.db.scalar(select(Course.id).where(Course.id == course_id)):
            raise HTTPException(status_code=404, detail="Course not found")

    # ==============================
    # 🧩 PROGRESS
    # ==============================

    async def get_progress_async(self, user: User) -> list[dict[str, Any]]:
        records = (
            await self.db.scalars(
                select(Progress)
                .where(Progress.user_id == user.id)
                .order_by(desc(Progress.updated_at))
            )
        ).all()
        return [to_progress(p) for p in records]

    async def update_progress_async(
        self, user: User, course_id: str, schema: UpdateProgress
    ) -> dict[str, Any]:
        sent = schema.model_fields_set
        try:
            progress = await self._get_progress(user.id, course_id)
            if not progress:
                await self._require_course(course_id)
                progress = Progress(
                    user_id=user.id,
                    course_id=course_id,
                    progress=schema.progress or 0,
                    last_module_index=schema.last_module_index or 0,
                    last_video_time=schema.last_video_time,
                    started_at=to_utc_naive(schema.started_at) or get_now(),
                    completed_at=to_utc_naive(schema.completed_at),
                    quiz_scores=dict(schema.quiz_scores or {}),
                )
                self.db.add(progress)
            else:
                if schema.progress is not None:
                    progress.progress = schema.progress
                if schema.last_module_index is not None:
                    progress.last_module_index = schema.last_module_index
                if "last_video_time" in sent:
                    progress.last_video_time = schema.last_video_time
                if schema.quiz_scores is not None:
                    progress.quiz_scores = dict(schema.quiz_scores)
                if schema.started_at is not None:
                    progress.started_at = to_utc_naive(schema.started_at)
                if "completed_at" in sent:
                    progress.completed_at = to_utc_naive(schema.completed_at)
                progress.updated_at = get_now()
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return to_progress(progress)

    async def complete_course_async(self, user: User, schema: CompleteCourse) -> dict[str, Any]:
        """Mark a course finished; the certificate and CPD points are granted once."""
        completed_at = get_now()
        try:
            progress = await self._get_progress(user.id, schema.course_id)
            if progress:
                progress.progress = 100
                progress.completed_at = completed_at
            else:
                await self._require_course(schema.course_id)
                self.db.add(
                    Progress(
                        user_id=user.id,
                        course_id=schema.course_id,
                        progress=100,
                        last_module_index=0,
                        completed_at=completed_at,
                        quiz_scores={},
                    )
                )

            existing = await self.db.scalar(
                select(Certificate.id).where(
                    Certificate.user_id == user.id, Certificate.course_id == schema.course_id
                )
            )
            if not existing:
                self.db.add(
                    Certificate(
                        user_id=user.id,
                        course_id=schema.course_id,
                        course_name=schema.course_name,
                        cpd_points=schema.cpd_points,
                        completed_at=completed_at,
                    )
                )
                await self.db.execute(
                    update(User)
                    .where(User.id == user.id)
                    .values(total_cpd_points=User.total_cpd_points + schema.cpd_points)
                )
                logger.info(f"Certificate issued to {user.email} for course {schema.course_id}")
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return await self.profile.get_me_async(user.id)

    async def get_certificates_async(self, user: User) -> list[dict[str, Any]]:
        certificates = (
            await self.db.scalars(
                select(Certificate)
                .where(Certificate.user_id == user.id)
                .order_by(desc(Certificate.completed_at))
            )
        ).all()
        return [to_certificate(c) for c in certificates]

    # ==============================
    # 🧩 ASSIGNMENTS
    # ==============================

    async def get_submission_async(self, user: User, module_id: str) -> Optional[dict[str, Any]]:
        submission = await self.db.scalar(
            select(AssignmentSubmission).where(
                AssignmentSubmission.user_id == user.id,
                AssignmentSubmission.module_id == module_id,
            )
        )
        return to_submission(submission) if submission else None

    async def submit_assignment_async(self, user: User, schema: SubmitAssignment) -> dict[str, Any]:
        module = await self.db.get(Module, schema.module_id)
        if not module or module.course_id != schema.course_id:
            raise HTTPException(status_code=404, detail="Assignment module not found")
        if module.type != ModuleType.ASSIGNMENT.value:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Submissions are only allowed for assignment modules",
            )
        if not await self._get_progress(user.id, schema.course_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You must be enrolled in this course before submitting assignments",
            )

        try:
            submission = await self.db.scalar(
                select(AssignmentSubmission).where(
                    AssignmentSubmission.user_id == user.id,
                    AssignmentSubmission.module_id == schema.module_id,
                )
            )
            if submission:
                submission.content = schema.content
                submission.submitted_at = get_now()
            else:
                submission = AssignmentSubmission(
                    user_id=user.id,
                    course_id=schema.course_id,
                    module_id=schema.module_id,
                    content=schema.content,
                )
                self.db.add(submission)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return to_submission(submission)
