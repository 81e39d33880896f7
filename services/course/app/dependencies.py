"""FastAPI dependencies shared by every router in the course service."""

from shared.auth.dependencies import (
    get_current_user_optional,
    get_current_user_required,
    require_roles,
)
from shared.constants import Role
from shared.models.user import CurrentUser

from app.config import Settings
from app.models.enums import UserRole

# Canonical names used throughout routers
get_current_user = get_current_user_required
get_optional_user = get_current_user_optional

require_admin = require_roles(Role.ADMIN)
require_creator = require_roles(Role.CREATOR, Role.ADMIN)


def get_settings() -> Settings:
    return Settings()


def primary_role(user: CurrentUser) -> UserRole:
    """Highest-privilege role carried by the token."""
    if user.has_role(Role.ADMIN):
        return UserRole.ADMIN
    if user.has_role(Role.CREATOR):
        return UserRole.CREATOR
    return UserRole.LEARNER

