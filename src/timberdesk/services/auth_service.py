from __future__ import annotations

from timberdesk.domain.errors import AuthorizationError
from timberdesk.domain.models import ROLE_ADMIN, ROLE_SALES, User

PERMISSIONS: dict[str, set[str]] = {
    "create_sale": {ROLE_ADMIN, ROLE_SALES},
    "manage_clients": {ROLE_ADMIN, ROLE_SALES},
    "manage_inventory": {ROLE_ADMIN},
    "record_purchase": {ROLE_ADMIN},
    "delete_record": {ROLE_ADMIN},
    "manage_employees": {ROLE_ADMIN},
    "view_reports": {ROLE_ADMIN},
    "wipe_data": {ROLE_ADMIN},
}


class AuthService:
    def can(self, user: User, action: str) -> bool:
        allowed_roles = PERMISSIONS.get(action)
        if not allowed_roles:
            return False
        return user.role in allowed_roles

    def require_action(self, user: User, action: str) -> None:
        if not self.can(user, action):
            raise AuthorizationError(f"Role '{user.role}' is not allowed to perform '{action}'.")
