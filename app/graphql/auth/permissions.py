from strawberry.types import Info
from strawberry.permission import BasePermission


class IsAuthenticated(BasePermission):
    message = "Authentication required."

    def has_permission(self, source, info: Info, **kwargs):
        return bool(info.context.user)


class IsAdmin(BasePermission):
    message = "Administrator role required."

    def has_permission(self, source, info: Info, **kwargs):
        user = info.context.user
        return bool(user) and user.is_admin
