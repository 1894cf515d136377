from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.conversions import coerce_int
from app.core.errors import NotFoundError
from app.models import Client


def _client_stmt(client_id: int, lock: bool = False):
    stmt = select(Client).where(Client.id == client_id)
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    return stmt


async def get_client(db: AsyncSession, client_id: int, lock: bool = False) -> Client:
    """
    Load a client or raise NotFoundError.

    With lock=True the client row is selected FOR UPDATE. Subscription writes
    take this lock so overlap checks and inserts for one client serialize.
    """
    client = None
    normalized_id = coerce_int(client_id)
    if normalized_id is not None:
        if lock:
            result = await db.execute(_client_stmt(normalized_id, lock=True))
            client = result.scalar_one_or_none()
        else:
            client = await db.get(Client, normalized_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    return client


async def find_client_by_fingerprint(db: AsyncSession, fingerprint_id: str) -> Client:
    """Resolve the opaque device token to its client."""
    result = await db.execute(
        select(Client).where(Client.fingerprint_id == fingerprint_id)
    )
    client: Optional[Client] = result.scalar_one_or_none()
    if client is None:
        raise NotFoundError("Client with fingerprint", fingerprint_id)
    return client
