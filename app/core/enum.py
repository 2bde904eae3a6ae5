from enum import Enum


class UserRole(str, Enum):
    """Roles a user can hold. A user holds exactly one."""
    LEARNER = "learner"
    MANAGER = "manager"
    ADMIN = "admin"


class CourseLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class ModuleType(str, Enum):
    VIDEO = "video"
    PDF = "pdf"
    PPT = "ppt"
    WORD = "word"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"


class NotificationType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ALERT = "alert"


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
