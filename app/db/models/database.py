from typing import Any, Optional
import datetime
import uuid

from sqlalchemy import JSON, Boolean, DateTime, Double, ForeignKeyConstraint, Index, Integer, PrimaryKeyConstraint, String, Text, UniqueConstraint, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from app.libs.formats.datetime import now


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = 'user'
    __table_args__ = (
        ForeignKeyConstraint(['assigned_manager_id'], ['user.id'], ondelete='SET NULL', name='user_assigned_manager_id_fkey'),
        PrimaryKeyConstraint('id', name='user_pk'),
        UniqueConstraint('email', name='user_email_key'),
        UniqueConstraint('google_id', name='user_google_id_key'),
        Index('idx_user_role', 'role'),
        Index('idx_user_assigned_manager', 'assigned_manager_id'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'learner'"))
    password_hash: Mapped[Optional[str]] = mapped_column(String)
    google_id: Mapped[Optional[str]] = mapped_column(String)
    can_switch_to_learner_view: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text('false'))
    avatar: Mapped[Optional[str]] = mapped_column(String)
    department: Mapped[Optional[str]] = mapped_column(String)
    joined_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    total_cpd_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text('0'))
    assigned_manager_id: Mapped[Optional[str]] = mapped_column(String(64))
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text('false'))
    email_verification_token: Mapped[Optional[str]] = mapped_column(String)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now, onupdate=now)

    assigned_manager: Mapped[Optional['User']] = relationship('User', remote_side=[id], back_populates='assigned_learners')
    assigned_learners: Mapped[list['User']] = relationship('User', back_populates='assigned_manager', passive_deletes=True)
    managed_courses: Mapped[list['Course']] = relationship('Course', back_populates='assigned_manager', passive_deletes=True)
    progress_records: Mapped[list['Progress']] = relationship('Progress', back_populates='user', cascade='all, delete-orphan', passive_deletes=True)
    certificates: Mapped[list['Certificate']] = relationship('Certificate', back_populates='user', cascade='all, delete-orphan', passive_deletes=True)
    assignment_submissions: Mapped[list['AssignmentSubmission']] = relationship('AssignmentSubmission', back_populates='user', cascade='all, delete-orphan', passive_deletes=True)
    refresh_sessions: Mapped[list['RefreshSession']] = relationship('RefreshSession', back_populates='user', cascade='all, delete-orphan', passive_deletes=True)


class Course(Base):
    __tablename__ = 'course'
    __table_args__ = (
        ForeignKeyConstraint(['assigned_manager_id'], ['user.id'], ondelete='SET NULL', name='course_assigned_manager_id_fkey'),
        PrimaryKeyConstraint('id', name='course_pk'),
        Index('idx_course_category', 'category'),
        Index('idx_course_assigned_manager', 'assigned_manager_id'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default='')
    thumbnail: Mapped[str] = mapped_column(String, nullable=False, default='')
    instructor: Mapped[str] = mapped_column(String, nullable=False, default='')
    category: Mapped[str] = mapped_column(String, nullable=False, default='General')
    duration: Mapped[str] = mapped_column(String, nullable=False, default='')
    cpd_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    enrolled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text('0'))
    rating: Mapped[float] = mapped_column(Double, nullable=False, default=0)
    level: Mapped[str] = mapped_column(String(16), nullable=False, default='Beginner')
    assigned_manager_id: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now, onupdate=now)

    assigned_manager: Mapped[Optional['User']] = relationship('User', back_populates='managed_courses')
    modules: Mapped[list['Module']] = relationship('Module', back_populates='course', cascade='all, delete-orphan', order_by='Module.position', passive_deletes=True)
    progress_records: Mapped[list['Progress']] = relationship('Progress', back_populates='course', cascade='all, delete-orphan', passive_deletes=True)
    assignment_submissions: Mapped[list['AssignmentSubmission']] = relationship('AssignmentSubmission', back_populates='course', cascade='all, delete-orphan', passive_deletes=True)


class Module(Base):
    __tablename__ = 'module'
    __table_args__ = (
        ForeignKeyConstraint(['course_id'], ['course.id'], ondelete='CASCADE', name='module_course_id_fkey'),
        PrimaryKeyConstraint('id', name='module_pk'),
        Index('idx_module_course_position', 'course_id', 'position'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default='')
    slides_url: Mapped[Optional[str]] = mapped_column(String)
    duration: Mapped[Optional[int]] = mapped_column(Integer)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[Optional[bool]] = mapped_column(Boolean)

    course: Mapped['Course'] = relationship('Course', back_populates='modules')
    questions: Mapped[list['QuizQuestion']] = relationship('QuizQuestion', back_populates='module', cascade='all, delete-orphan', order_by='QuizQuestion.position', passive_deletes=True)
    assignment_submissions: Mapped[list['AssignmentSubmission']] = relationship('AssignmentSubmission', back_populates='module', cascade='all, delete-orphan', passive_deletes=True)


class QuizQuestion(Base):
    __tablename__ = 'quiz_question'
    __table_args__ = (
        ForeignKeyConstraint(['module_id'], ['module.id'], ondelete='CASCADE', name='quiz_question_module_id_fkey'),
        PrimaryKeyConstraint('id', name='quiz_question_pk'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    module_id: Mapped[str] = mapped_column(String(64), nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    correct_answer: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    module: Mapped['Module'] = relationship('Module', back_populates='questions')


class Progress(Base):
    __tablename__ = 'progress'
    __table_args__ = (
        ForeignKeyConstraint(['course_id'], ['course.id'], ondelete='CASCADE', name='progress_course_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='progress_user_id_fkey'),
        PrimaryKeyConstraint('id', name='progress_pk'),
        UniqueConstraint('user_id', 'course_id', name='progress_user_id_course_id_key'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_module_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_video_time: Mapped[Optional[int]] = mapped_column(Integer)
    quiz_scores: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    started_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    completed_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now, onupdate=now)

    user: Mapped['User'] = relationship('User', back_populates='progress_records')
    course: Mapped['Course'] = relationship('Course', back_populates='progress_records')


class Certificate(Base):
    __tablename__ = 'certificate'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='certificate_user_id_fkey'),
        PrimaryKeyConstraint('id', name='certificate_pk'),
        Index('idx_certificate_user_course', 'user_id', 'course_id'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    # no FK: certificates outlive deleted courses
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_name: Mapped[str] = mapped_column(String, nullable=False)
    cpd_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)

    user: Mapped['User'] = relationship('User', back_populates='certificates')


class Notification(Base):
    __tablename__ = 'notification'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='notification_pk'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    target_roles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    expires_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)


class AssignmentSubmission(Base):
    __tablename__ = 'assignment_submission'
    __table_args__ = (
        ForeignKeyConstraint(['course_id'], ['course.id'], ondelete='CASCADE', name='assignment_submission_course_id_fkey'),
        ForeignKeyConstraint(['module_id'], ['module.id'], ondelete='CASCADE', name='assignment_submission_module_id_fkey'),
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='assignment_submission_user_id_fkey'),
        PrimaryKeyConstraint('id', name='assignment_submission_pk'),
        UniqueConstraint('user_id', 'module_id', name='assignment_submission_user_id_module_id_key'),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False)
    module_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    submitted_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now, onupdate=now)

    user: Mapped['User'] = relationship('User', back_populates='assignment_submissions')
    course: Mapped['Course'] = relationship('Course', back_populates='assignment_submissions')
    module: Mapped['Module'] = relationship('Module', back_populates='assignment_submissions')


class RefreshSession(Base):
    __tablename__ = 'refresh_session'
    __table_args__ = (
        ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE', name='refresh_session_user_id_fkey'),
        PrimaryKeyConstraint('id', name='refresh_session_pk'),
        Index('idx_refresh_session_user', 'user_id'),
    )

    # same value as the refresh token's jti
    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    revoked_at: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=now)

    user: Mapped['User'] = relationship('User', back_populates='refresh_sessions')
