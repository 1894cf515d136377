from dataclasses import dataclass
from typing import Optional

from strawberry.fastapi import BaseContext
from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import verify_token
from app.core.logging_config import get_logger
from app.crud.usersCrud import get_staff_by_id
from app.db.postgresql import get_db
from app.models import StaffAccount

logger = get_logger("graphql.context")


@dataclass
class Context(BaseContext):
    db: AsyncSession
    request: Optional[Request] = None
    response: Optional[Response] = None
    user: Optional[StaffAccount] = None

    @property
    def account_id(self) -> Optional[int]:
        return self.user.id if self.user else None


def _extract_token(request: Request) -> Optional[str]:
    token = request.headers.get("x-access-token")
    if token:
        return token
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def build_context(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> Context:
    user = None
    access_token = _extract_token(request)

    if access_token:
        payload = verify_token(access_token)
        if payload and payload.get("user_id"):
            staff = await get_staff_by_id(db, payload["user_id"])
            if staff and staff.is_active:
                user = staff
            else:
                logger.warning("Token for unknown or inactive account %s", payload.get("user_id"))

    return Context(db=db, request=request, response=response, user=user)
