"""FastAPI dependencies: authenticated actors and app-scoped collaborators."""

from fastapi import Request

from app.audit.recorder import AuditRecorder
from app.registry.directory import UserDirectory
from shared.auth.dependencies import get_current_user_required, require_roles
from shared.constants import STAFF_ROLES, Role

get_current_user = get_current_user_required

require_student = require_roles(Role.STUDENT)

require_staff = require_roles(*STAFF_ROLES)


def get_audit_recorder(request: Request) -> AuditRecorder:
    return request.app.state.audit


def get_user_directory(request: Request) -> UserDirectory:
    return request.app.state.user_directory
