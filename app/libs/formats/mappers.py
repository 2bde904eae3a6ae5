"""Shape ORM rows into the camelCase payloads the web client reads.

Callers must eager-load the relationships a mapper touches
(see COURSE_LOAD and USER_LOAD).
"""
from typing import Any

from sqlalchemy.orm import selectinload

from app.core.enum import ModuleType, UserRole
from app.db.models.database import (
    AssignmentSubmission,
    Certificate,
    Course,
    Module,
    Notification,
    Progress,
    User,
)
from app.libs.formats.datetime import iso

COURSE_LOAD = (selectinload(Course.modules).selectinload(Module.questions),)

USER_LOAD = (
    selectinload(User.progress_records),
    selectinload(User.certificates),
    selectinload(User.managed_courses),
    selectinload(User.assigned_learners),
)


def to_course(course: Course) -> dict[str, Any]:
    modules = sorted(course.modules, key=lambda m: m.position)
    return {
        "id": course.id,
        "title": course.title,
        "description": course.description,
        "thumbnail": course.thumbnail,
        "instructor": course.instructor,
        "category": course.category,
        "duration": course.duration,
        "modules": [to_module(m) for m in modules],
        "cpdPoints": course.cpd_points,
        "enrolledCount": course.enrolled_count,
        "rating": course.rating,
        "level": course.level,
        "assignedManagerId": course.assigned_manager_id,
    }


def to_module(module: Module) -> dict[str, Any]:
    questions = None
    if module.type == ModuleType.QUIZ.value:
        questions = [
            {
                "id": q.id,
                "question": q.question,
                "options": list(q.options or []),
                "correctAnswer": q.correct_answer,
            }
            for q in sorted(module.questions, key=lambda q: q.position)
        ]
    return {
        "id": module.id,
        "title": module.title,
        "type": module.type,
        "content": module.content,
        "slidesUrl": module.slides_url,
        "duration": module.duration,
        "completed": module.completed,
        "questions": questions,
    }


def to_progress(progress: Progress) -> dict[str, Any]:
    return {
        "courseId": progress.course_id,
        "progress": progress.progress,
        "lastModuleIndex": progress.last_module_index,
        "lastVideoTime": progress.last_video_time,
        "startedAt": iso(progress.started_at),
        "completedAt": iso(progress.completed_at),
        "quizScores": dict(progress.quiz_scores or {}),
    }


def to_certificate(certificate: Certificate) -> dict[str, Any]:
    return {
        "id": certificate.id,
        "courseId": certificate.course_id,
        "courseName": certificate.course_name,
        "completedAt": iso(certificate.completed_at),
        "cpdPoints": certificate.cpd_points,
    }


def to_user(user: User) -> dict[str, Any]:
    # dict.fromkeys keeps first-seen order while dropping duplicates
    completed = list(dict.fromkeys(c.course_id for c in user.certificates))
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "canSwitchToLearnerView": user.can_switch_to_learner_view,
        "avatar": user.avatar,
        "department": user.department,
        "joinedAt": user.joined_at.date().isoformat(),
        "totalCpdPoints": user.total_cpd_points if user.role == UserRole.LEARNER.value else 0,
        "completedCourses": completed,
        "certificates": [to_certificate(c) for c in user.certificates],
        "progress": [to_progress(p) for p in user.progress_records],
        "assignedManagerId": user.assigned_manager_id,
        "assignedCourses": [c.id for c in user.managed_courses],
        "assignedLearners": [u.id for u in user.assigned_learners],
    }


def to_notification(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.id,
        "type": notification.type,
        "message": notification.message,
        "targetRoles": list(notification.target_roles or []),
        "createdAt": iso(notification.created_at),
        "expiresAt": iso(notification.expires_at),
    }


def to_submission(submission: AssignmentSubmission) -> dict[str, Any]:
    return {
        "id": submission.id,
        "courseId": submission.course_id,
        "moduleId": submission.module_id,
        "content": submission.content,
        "submittedAt": iso(submission.submitted_at),
        "updatedAt": iso(submission.updated_at),
    }
