from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool
from fastapi import Request
from typing import AsyncGenerator, Optional

from app.core.config import settings

# Create base class for models (can be defined before engine)
Base = declarative_base()


def get_database_url(db_url: str) -> str:
    """Get properly formatted database URL"""
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://")
    return db_url


class Database:
    """
    Persistence handle owning the engine and session factory.

    Built explicitly by the application lifespan (or a test fixture) and
    passed around; nothing is created at import time.

    Connection pooling strategy:
    - SQLite: NullPool (required for thread safety)
    - PostgreSQL Development: NullPool (simpler debugging)
    - PostgreSQL Production: QueuePool with connection limits
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = get_database_url(url)
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    def connect(self) -> None:
        if self._engine is not None:
            return

        if "sqlite" in self.url:
            self._engine = create_async_engine(
                self.url,
                echo=self.echo,
                connect_args={"check_same_thread": False},
                poolclass=NullPool,
            )
        elif settings.ENVIRONMENT == "development":
            self._engine = create_async_engine(
                self.url,
                echo=self.echo,
                poolclass=NullPool,
            )
        else:
            self._engine = create_async_engine(
                self.url,
                echo=self.echo,
                poolclass=AsyncAdaptedQueuePool,
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_pre_ping=True,  # Verify connections before use
            )

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )

    def session(self) -> AsyncSession:
        """Create a new async session"""
        if self._session_factory is None:
            raise RuntimeError("Database is not connected")
        return self._session_factory()

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> bool:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def disconnect(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None


def get_database(request: Request) -> Database:
    """Return the persistence handle attached to the running application"""
    return request.app.state.database


# Dependency to get DB session
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session - only commits if there are pending changes"""
    database = get_database(request)
    async with database.session() as session:
        try:
            yield session
            # Only commit if there are pending changes (new, dirty, or deleted objects)
            if session.new or session.dirty or session.deleted:
                await session.commit()
        except Exception:
            await session.rollback()
            raise
