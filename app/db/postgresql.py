from sqlalchemy import BigInteger, Integer, MetaData
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings

settings = get_settings()

# SQLite only autoincrements INTEGER primary keys
BigIntPK = BigInteger().with_variant(Integer, "sqlite")

engine = create_async_engine(
    settings.database_url,
    echo=settings.sql_echo,
)

SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


class Base(DeclarativeBase):
    metadata = MetaData(schema=settings.db_schema)


async def get_db() -> AsyncSession:
    async with SessionLocal() as session:
        yield session
