from enum import Enum


class Role(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    PARENT = "parent"
    ADMIN = "admin"


# Roles allowed to manage enrollments on behalf of students
STAFF_ROLES = frozenset({Role.TEACHER, Role.ADMIN})
