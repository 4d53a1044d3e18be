from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from skinarena.create_postgres_engine import create_postgres_engine
from skinarena.create_sqlite_engine import create_sqlite_engine
from skinarena.load_secrets import database_url, host
from skinarena.models.schemas import Base


def create_engine(url: str | None = database_url) -> AsyncEngine:
    """Pick the engine from DATABASE_URL, the DB_* variables or the local sqlite file."""
    if url is None:
        return create_postgres_engine() if host else create_sqlite_engine()
    if url.startswith("sqlite"):
        return create_sqlite_engine(url)
    return create_postgres_engine(url)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        autocommit=False,
        class_=AsyncSession,
        autoflush=True,
        expire_on_commit=False,
        bind=engine,
    )


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
