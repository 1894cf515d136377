from typing import Optional

import strawberry

from app.graphql.auth.types import AuthUser


@strawberry.type
class AuthQuery:
    @strawberry.field
    def current_user(self, info: strawberry.Info) -> Optional[AuthUser]:
        user = info.context.user
        return AuthUser.from_model(user) if user else None
