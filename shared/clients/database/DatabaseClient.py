"""Async connection to the primary (relational) database.

Read-only from the point of view of the search subsystem: it only ever
executes parameterized SELECT statements built by FileRepository.
"""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.sql.elements import TextClause

from shared.helper.HelperConfig import HelperConfig


class DatabaseClient:
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, engine: AsyncEngine | None = None) -> None:
        """Create the engine and session factory.

        Args:
            engine: Optional prebuilt engine (e.g. an in-memory database in tests).
        """
        if engine is None:
            url = self._helper_config.get_string_val("DATABASE_URL")
            engine = create_async_engine(
                url,
                pool_pre_ping=True,
                pool_size=int(self._helper_config.get_number_val("DATABASE_POOL_SIZE", default=10)),
                max_overflow=int(self._helper_config.get_number_val("DATABASE_MAX_OVERFLOW", default=20)),
                pool_recycle=3600,
            )
        self._engine = engine
        self._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def close(self) -> None:
        """Dispose the engine and its connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def fetch_all(self, statement: TextClause) -> list[dict[str, Any]]:
        """Execute a SELECT and return its rows as plain dicts.

        Args:
            statement (TextClause): A text() statement with all values bound as parameters.

        Returns:
            list[dict[str, Any]]: One dict per row, keyed by column label.

        Raises:
            RuntimeError: If the client was not booted.
            sqlalchemy.exc.SQLAlchemyError: If the query fails.
        """
        if self._session_factory is None:
            raise RuntimeError("Database client not initialised. Call boot() before querying.")
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [dict(row) for row in result.mappings().all()]

    async def do_healthcheck(self) -> bool:
        """Return True if a trivial query succeeds."""
        try:
            await self.fetch_all(text("SELECT 1 AS ok"))
            return True
        except Exception as exc:
            self.logging.error("Database health check failed: %s", exc)
            return False
