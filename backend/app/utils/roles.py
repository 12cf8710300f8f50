from fastapi import Depends

from ..models.enums import UserRole
from .dependencies import CurrentUser, get_current_user
from .error_handlers import AuthorizationError


def _roles_required(*roles: UserRole):
    allowed = {r.value for r in roles}

    def check_role(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            raise AuthorizationError(f"{' or '.join(sorted(allowed))} role required")
        return user
    return check_role


admin_only = _roles_required(UserRole.ADMIN)
reviewers = _roles_required(UserRole.ADMIN, UserRole.RECRUITER)
interview_panel = _roles_required(UserRole.ADMIN, UserRole.RECRUITER, UserRole.INTERVIEWER)
