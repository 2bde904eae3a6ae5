import math
from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import Depends
from sqlalchemy import ColumnElement, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum import UserRole
from app.db.models.database import Certificate, Course, Progress, User
from app.db.session import get_session

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def percent(part: int, whole: int) -> int:
    return round_half_up(part / whole * 100) if whole > 0 else 0


def mean(values: list[int]) -> int:
    return round_half_up(sum(values) / len(values)) if values else 0


@dataclass
class ReportScope:
    """Which learners, courses and records a report covers.

    A manager id scopes to that manager's learners and courses. Without one,
    admins are scoped to the courses they teach.
    """

    is_admin: bool
    manager_id: Optional[str] = None
    instructor_course_ids: list[str] = field(default_factory=list)

    def learner_filters(self) -> list[ColumnElement[bool]]:
        filters = [User.role == UserRole.LEARNER.value]
        if self.manager_id:
            filters.append(User.assigned_manager_id == self.manager_id)
        elif self.is_admin:
            filters.append(
                exists().where(
                    Progress.user_id == User.id,
                    Progress.course_id.in_(self.instructor_course_ids),
                )
            )
        return filters

    def course_filters(self) -> list[ColumnElement[bool]]:
        if self.manager_id:
            return [Course.assigned_manager_id == self.manager_id]
        if self.is_admin:
            return [Course.id.in_(self.instructor_course_ids)]
        return []

    def record_filters(self, model, learner_ids: list[str]) -> list[ColumnElement[bool]]:
        """Filters for Progress or Certificate rows."""
        if self.manager_id:
            return [model.user_id.in_(learner_ids)]
        if self.is_admin:
            return [model.course_id.in_(self.instructor_course_ids)]
        return []


class ReportsService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    async def _scope(self, actor: User, manager_id: Optional[str]) -> ReportScope:
        is_admin = actor.role == UserRole.ADMIN.value
        if actor.role == UserRole.MANAGER.value:
            manager_id = actor.id

        course_ids: list[str] = []
        if is_admin:
            course_ids = list(
                (
                    await self.db.scalars(
                        select(Course.id).where(
                            or_(Course.instructor == actor.name, Course.instructor == actor.email)
                        )
                    )
                ).all()
            )
        return ReportScope(is_admin=is_admin, manager_id=manager_id, instructor_course_ids=course_ids)

    async def _count(self, model, filters: list[ColumnElement[bool]]) -> int:
        return await self.db.scalar(select(func.count()).select_from(model).where(*filters)) or 0

    async def overview_async(self, actor: User, manager_id: Optional[str] = None) -> dict[str, Any]:
        scope = await self._scope(actor, manager_id)
        learner_filters = scope.learner_filters()

        learners = (
            await self.db.execute(select(User.id, User.total_cpd_points).where(*learner_filters))
        ).all()
        learner_ids = [row.id for row in learners]
        total_users = len(learners)

        course_filters = scope.course_filters()
        progress_filters = scope.record_filters(Progress, learner_ids)
        certificate_filters = scope.record_filters(Certificate, learner_ids)

        course_count = await self._count(Course, course_filters)
        enrollments = await self._count(Progress, progress_filters)
        certificates = await self._count(Certificate, certificate_filters)
        active_users = await self._count(
            User,
            [
                *learner_filters,
                or_(
                    exists().where(Progress.user_id == User.id),
                    exists().where(Certificate.user_id == User.id),
                ),
            ],
        )

        # per-course progress, restricted the same way as enrollments
        courses = (
            await self.db.execute(
                select(Course.id, Course.title, Course.category, Course.enrolled_count)
                .where(*course_filters)
                .order_by(Course.created_at, Course.id)
            )
        ).all()
        progress_rows = (
            await self.db.execute(
                select(Progress.course_id, Progress.progress, Progress.created_at).where(
                    *progress_filters
                )
            )
        ).all()
        by_course: dict[str, list[int]] = {}
        monthly = [0] * 12
        for row in progress_rows:
            by_course.setdefault(row.course_id, []).append(row.progress)
            monthly[row.created_at.month - 1] += 1

        completion_rates = sorted(
            (
                {
                    "course": c.title,
                    "rate": percent(
                        sum(1 for p in by_course.get(c.id, []) if p >= 100),
                        len(by_course.get(c.id, [])),
                    ),
                }
                for c in courses
            ),
            key=lambda item: item["rate"],
            reverse=True,
        )

        categories: dict[str, int] = {}
        for c in courses:
            categories[c.category] = categories.get(c.category, 0) + c.enrolled_count
        category_distribution = sorted(
            ({"category": k, "value": v} for k, v in categories.items()),
            key=lambda item: item["value"],
            reverse=True,
        )

        enrollment_by_month = [
            {"month": label, "enrollments": monthly[i]} for i, label in enumerate(MONTH_LABELS)
        ]
        cpd_growth = []
        running = 0
        for item in enrollment_by_month:
            running += item["enrollments"]
            cpd_growth.append({"month": item["month"], "points": running})

        total_cpd = 0 if scope.is_admin else sum(row.total_cpd_points for row in learners)
        average_cpd = 0 if scope.is_admin or total_users == 0 else round_half_up(total_cpd / total_users)

        return {
            "learners": total_users,
            "courses": course_count,
            "enrollments": enrollments,
            "completionRate": percent(certificates, enrollments),
            "totalCpdPoints": total_cpd,
            "enrollmentByMonth": enrollment_by_month,
            "completionRates": completion_rates,
            "categoryDistribution": category_distribution,
            "cpdGrowth": cpd_growth,
            "userStats": {
                "totalUsers": total_users,
                "activeUsers": active_users,
                "coursesCompleted": certificates,
                "averageCpdPoints": average_cpd,
            },
        }

    async def learners_async(self, actor: User, manager_id: Optional[str] = None) -> list[dict[str, Any]]:
        scope = await self._scope(actor, manager_id)

        filters = [User.role == UserRole.LEARNER.value]
        if scope.manager_id:
            filters.append(User.assigned_manager_id == scope.manager_id)
        if scope.is_admin:
            filters.append(
                exists().where(
                    Progress.user_id == User.id,
                    Progress.course_id.in_(scope.instructor_course_ids),
                )
            )
        users = (await self.db.scalars(select(User).where(*filters).order_by(User.name))).all()
        user_ids = [u.id for u in users]

        progress_stmt = select(Progress.user_id, Progress.progress).where(Progress.user_id.in_(user_ids))
        certificate_stmt = select(Certificate.user_id).where(Certificate.user_id.in_(user_ids))
        if scope.is_admin:
            progress_stmt = progress_stmt.where(Progress.course_id.in_(scope.instructor_course_ids))
            certificate_stmt = certificate_stmt.where(
                Certificate.course_id.in_(scope.instructor_course_ids)
            )

        progress: dict[str, list[int]] = {}
        for row in (await self.db.execute(progress_stmt)).all():
            progress.setdefault(row.user_id, []).append(row.progress)
        completed: dict[str, int] = {}
        for user_id in (await self.db.scalars(certificate_stmt)).all():
            completed[user_id] = completed.get(user_id, 0) + 1

        return [
            {
                "id": u.id,
                "name": u.name,
                "email": u.email,
                "completion": mean(progress.get(u.id, [])),
                "cpd": 0 if scope.is_admin else u.total_cpd_points,
                "completedCourses": completed.get(u.id, 0),
            }
            for u in users
        ]

    async def courses_async(self, actor: User) -> list[dict[str, Any]]:
        # admins cannot pick a manager here
        scope = await self._scope(actor, None)

        courses = (
            await self.db.scalars(
                select(Course)
                .where(*scope.course_filters())
                .order_by(Course.enrolled_count.desc(), Course.id)
            )
        ).all()

        progress_stmt = select(Progress.course_id, Progress.progress).where(
            Progress.course_id.in_([c.id for c in courses])
        )
        if scope.manager_id:
            progress_stmt = progress_stmt.join(User, User.id == Progress.user_id).where(
                User.assigned_manager_id == scope.manager_id
            )
        progress: dict[str, list[int]] = {}
        for row in (await self.db.execute(progress_stmt)).all():
            progress.setdefault(row.course_id, []).append(row.progress)

        return [
            {
                "id": c.id,
                "title": c.title,
                "enrollment": c.enrolled_count,
                "avgRating": c.rating,
                "avgProgress": mean(progress.get(c.id, [])),
            }
            for c in courses
        ]
