from typing import Optional

import strawberry

from app.models import StaffAccount


@strawberry.input
class LoginInput:
    identifier: str
    password: str


@strawberry.type
class TokenResponse:
    access_token: Optional[str]
    message: str


@strawberry.type
class AuthUser:
    id: int
    username: str
    full_name: Optional[str]
    role: str

    @classmethod
    def from_model(cls, account: StaffAccount) -> "AuthUser":
        return cls(
            id=account.id,
            username=account.username,
            full_name=account.full_name,
            role=account.role,
        )
