# Authentication module

from app.modules.auth.dependencies import (
    get_current_account,
    get_current_user,
    get_current_admin,
    get_current_superadmin,
    require_capability,
)

__all__ = [
    "get_current_account",
    "get_current_user",
    "get_current_admin",
    "get_current_superadmin",
    "require_capability",
]
