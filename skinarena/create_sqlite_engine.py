import pathlib

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

file_path = pathlib.Path(__file__).parents[1]
file_path /= "./skinarena.sqlite3"
sqlite_url = f"sqlite+aiosqlite:///{file_path}"


def create_sqlite_engine(url: str = sqlite_url):
    if url in ("sqlite+aiosqlite://", "sqlite+aiosqlite:///:memory:"):
        # one shared connection, otherwise every session sees its own empty database
        return create_async_engine(
            url,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(url=url, echo=False)
