from pathlib import Path

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from mediareaper.config import settings


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False
    )


# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=False
)

# Session factory
async_session = build_session_factory(engine)


def _ensure_sqlite_directory(url: URL):
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


async def init_db(bind: AsyncEngine = engine):
    """Initialize the database, creating all tables."""
    # Import models to register them
    from mediareaper.models import connection  # noqa: F401

    _ensure_sqlite_directory(bind.url)
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
