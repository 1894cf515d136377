import strawberry

from app.auth.hashing import verify_password
from app.auth.jwt import create_access_token
from app.core.logging_config import get_logger, log_security_event
from app.crud.usersCrud import get_staff_by_username
from app.graphql.auth.types import LoginInput, TokenResponse

logger = get_logger("graphql.auth.mutations")


@strawberry.type
class AuthMutation:
    @strawberry.mutation
    async def login(self, data: LoginInput, info: strawberry.Info) -> TokenResponse:
        """Exchange staff credentials for an access token."""
        account = await get_staff_by_username(info.context.db, data.identifier)

        if not account or not account.is_active or not verify_password(data.password, account.password_hash):
            log_security_event("login_failed", f"username={data.identifier}")
            return TokenResponse(access_token=None, message="Invalid credentials")

        access_token = create_access_token(
            {"user_id": str(account.id), "username": account.username, "role": account.role}
        )

        response = info.context.response
        if response is not None:
            response.headers["x-access-token"] = access_token

        logger.info("Staff account %s logged in", account.id)
        return TokenResponse(access_token=access_token, message="Login successful")
