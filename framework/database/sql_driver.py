from sqlmodel import SQLModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from framework.repository.unit_of_work import UnitOfWorkFactory
from .base import BaseDatabaseDriver

class SQLDriver(BaseDatabaseDriver):
    """Async SQL engine (MySQL in production, SQLite for local runs and tests)."""

    def __init__(self, url: str, echo: bool = False):
        self.engine = create_async_engine(url, echo=echo, future=True, pool_pre_ping=True)
        self.session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        self.uow_factory = UnitOfWorkFactory(self.session_factory, self.engine)

    async def connect(self):
        """Check connectivity (the engine pools connections itself)."""
        async with self.engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

    async def disconnect(self):
        """Dispose the connection pool."""
        await self.engine.dispose()

    async def create_tables(self):
        """Create all registered tables; development convenience, production runs Alembic."""
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
