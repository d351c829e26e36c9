"""
Permission Context - entry point for permission checks.
"""

from shared.config.logging import security_audit_logger
from shared.utils.exceptions import UnauthorizedError, PermissionDeniedError

# Role granting every permission token
ADMIN_ROLE = "ADMIN"


class PermissionContext:
    """
    Capability based permission checks for the current user.

    The user is the claims dict produced by whatever authenticated the
    request (`sub`, `email`, `roles`, `permissions`); None means anonymous.

    Usage:
        ctx = PermissionContext({"sub": "7", "permissions": ["Catalog:Modify"]})

        ctx.ensure_logged_in()
        ctx.ensure_permission("Catalog:Modify")

        # Row level declaration: None = no check, "" = logged in only
        ctx.require(descriptor.modify_permission)
    """

    def __init__(self, user: dict | None = None):
        self._user = user or {}
        self._roles = list(self._user.get("roles", []))
        self._permissions = frozenset(self._user.get("permissions", []))

    @classmethod
    def anonymous(cls) -> "PermissionContext":
        return cls(None)

    @property
    def user(self) -> dict:
        """Get raw user dict."""
        return self._user

    @property
    def user_id(self) -> int | None:
        """Get user ID, None when anonymous."""
        sub = self._user.get("sub")
        if sub is None:
            return None
        return int(sub) if isinstance(sub, str) and sub.isdigit() else sub

    @property
    def user_email(self) -> str | None:
        return self._user.get("email")

    @property
    def roles(self) -> list[str]:
        return self._roles

    @property
    def permissions(self) -> frozenset[str]:
        return self._permissions

    @property
    def is_logged_in(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self._roles

    def has_permission(self, permission: str) -> bool:
        """Check a permission token; admins hold every token."""
        if not self.is_logged_in:
            return False
        return self.is_admin or permission in self._permissions

    def ensure_logged_in(self) -> None:
        """Raise UnauthorizedError if there is no current user."""
        if not self.is_logged_in:
            security_audit_logger.warning("Anonymous access denied")
            raise UnauthorizedError()

    def ensure_permission(self, permission: str) -> None:
        """Raise if the user is anonymous or lacks the permission token."""
        self.ensure_logged_in()
        if not self.has_permission(permission):
            security_audit_logger.warning(
                "Permission denied",
                user_id=self.user_id,
                permission=permission,
            )
            raise PermissionDeniedError(permission, user_id=self.user_id)

    def require(self, permission: str | None) -> None:
        """
        Enforce a row level permission declaration.

        None means the row declares no permission, an empty token requires a
        logged in user only, anything else is checked as a permission token.
        """
        if permission is None:
            return
        if permission == "":
            self.ensure_logged_in()
        else:
            self.ensure_permission(permission)

    def __repr__(self) -> str:
        return f"<PermissionContext(user_id={self.user_id}, roles={self._roles})>"
