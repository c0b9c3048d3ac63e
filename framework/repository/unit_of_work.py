"""
Unit of Work: owns one session and one raw connection, hands out repositories
and draws the transaction boundary.

The raw connection runs in autocommit mode and serves stored procedures,
database functions and ad-hoc SQL; it is opened on first use. Store errors
(connectivity, constraints, timeouts) propagate unchanged.
"""

import asyncio
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Type

from sqlalchemy import func, select, text
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlmodel.ext.asyncio.session import AsyncSession

from framework.exceptions.handler import AmbiguousMatchError, EntityNotFoundError
from framework.logging.logger import get_logger
from .base import Repository

logger = get_logger("unit_of_work")

_SCALAR_TYPES = (bool, int, float, str, bytes, Decimal)


def _map_row(row: RowMapping, into: Optional[Type] = None) -> Any:
    """Convert a result row to `into` (dict when omitted)."""
    if into is None:
        return dict(row)
    if isinstance(into, type) and issubclass(into, _SCALAR_TYPES):
        if len(row) != 1:
            raise ValueError(f"Cannot map a {len(row)}-column row to {into.__name__}")
        value = next(iter(row.values()))
        return value if value is None else into(value)
    if hasattr(into, "model_validate"):
        return into.model_validate(dict(row))
    return into(**row)


def _exactly_one(rows: List[Any], what: str) -> Any:
    if not rows:
        raise EntityNotFoundError(f"{what} returned no rows")
    if len(rows) > 1:
        raise AmbiguousMatchError(f"{what} returned {len(rows)} rows, expected one")
    return rows[0]


class UnitOfWork:
    """Manages related repositories with a shared session and transaction commit/rollback."""

    def __init__(self, session: Optional[AsyncSession] = None, engine: Optional[AsyncEngine] = None):
        """Initialize UnitOfWork; session must be provided (e.g. UnitOfWorkFactory.create())."""
        if session is None:
            raise ValueError("Session must be provided. Use UnitOfWorkFactory.create() or pass session explicitly.")

        self.session = session
        self._engine = engine if engine is not None else session.bind
        self._connection: Optional[AsyncConnection] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def get_repository(self, model_class, repo_class=None) -> Repository:
        """Build a repository bound to this unit's session (a new instance per call)."""
        if repo_class is not None:
            return repo_class(self.session)
        return Repository(self.session, model_class)

    # --- transaction boundary ---

    async def save_changes(self) -> None:
        """Commit everything staged through this unit's repositories in one flush."""
        await self.session.commit()
        logger.debug("Changes saved")

    async def rollback(self) -> None:
        """Rollback all changes."""
        await self.session.rollback()

    async def flush(self) -> None:
        """Flush session (e.g. to get auto-increment IDs)."""
        await self.session.flush()

    # --- raw connection ---

    async def _get_connection(self) -> AsyncConnection:
        if self._closed:
            raise RuntimeError("UnitOfWork is closed")
        if self._connection is None:
            if self._engine is None:
                raise RuntimeError("UnitOfWork has no engine for raw commands")
            self._connection = await self._engine.connect()
            await self._connection.execution_options(isolation_level="AUTOCOMMIT")
        return self._connection

    async def _execute(self, statement, params: Optional[Dict[str, Any]], timeout: float):
        connection = await self._get_connection()
        call = connection.execute(statement, params or {})
        if timeout and timeout > 0:
            return await asyncio.wait_for(call, timeout=timeout)
        return await call

    async def _rows(self, statement, params, into, timeout) -> List[Any]:
        result = await self._execute(statement, params, timeout)
        if not result.returns_rows:
            return []
        return [_map_row(row, into) for row in result.mappings().all()]

    def _procedure_call(self, name: str, data: Optional[Dict[str, Any]]):
        preparer = self._engine.dialect.identifier_preparer
        quoted = ".".join(preparer.quote(part) for part in name.split("."))
        data = data or {}
        for key in data:
            if not key.isidentifier():
                raise ValueError(f"Invalid parameter name for {name}: {key!r}")
        binds = ", ".join(f":{key}" for key in data)
        logger.debug(f"CALL {quoted} with {len(data)} parameter(s)")
        return text(f"CALL {quoted}({binds})")

    def _function_call(self, name: str, args: Sequence[Any]):
        # Dotted names map to func.<schema>.<name>; every argument is a bound parameter
        *packages, function_name = name.split(".")
        target = func
        for package in packages:
            target = getattr(target, package)
        expression = getattr(target, function_name)(*args)
        logger.debug(f"SELECT {name}() with {len(args)} argument(s)")
        return select(expression.label(function_name))

    async def execute_stored_procedure(
        self,
        name: str,
        data: Optional[Dict[str, Any]] = None,
        into: Optional[Type] = None,
        timeout: float = 0,
    ) -> List[Any]:
        """Call a stored procedure and return its rows (empty when it has no result set)."""
        return await self._rows(self._procedure_call(name, data), data, into, timeout)

    async def execute_stored_procedure_single(
        self,
        name: str,
        data: Optional[Dict[str, Any]] = None,
        into: Optional[Type] = None,
        timeout: float = 0,
    ) -> Any:
        """Call a stored procedure that must return exactly one row."""
        rows = await self.execute_stored_procedure(name, data, into, timeout)
        return _exactly_one(rows, f"Procedure {name}")

    async def execute_stored_procedure_command(
        self,
        name: str,
        data: Optional[Dict[str, Any]] = None,
        timeout: float = 0,
    ) -> int:
        """Call a stored procedure for its side effects; returns the affected row count."""
        result = await self._execute(self._procedure_call(name, data), data, timeout)
        return result.rowcount

    async def execute_function(
        self,
        name: str,
        args: Sequence[Any] = (),
        into: Optional[Type] = None,
        timeout: float = 0,
    ) -> List[Any]:
        """Run SELECT name(args...) and return all rows."""
        return await self._rows(self._function_call(name, args), None, into, timeout)

    async def execute_function_single(
        self,
        name: str,
        args: Sequence[Any] = (),
        into: Optional[Type] = None,
        timeout: float = 0,
    ) -> Any:
        """Run SELECT name(args...) expecting exactly one row."""
        rows = await self.execute_function(name, args, into, timeout)
        return _exactly_one(rows, f"Function {name}")

    async def execute_query(
        self,
        query: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: float = 0,
    ) -> List[Dict[str, Any]]:
        """
        Execute raw SQL and return rows as dicts.

        The query text is trusted as-is: never build it from user input,
        pass values through `params` (``:name`` placeholders) instead.
        """
        return await self._rows(text(query), params, None, timeout)

    # --- lifetime ---

    async def close(self) -> None:
        """Release the session and the raw connection; calling it again is a no-op."""
        if self._closed:
            return
        self._closed = True
        try:
            await self.session.close()
        finally:
            connection, self._connection = self._connection, None
            if connection is not None:
                await connection.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is not None:
                await self.rollback()
        finally:
            await self.close()


class UnitOfWorkFactory:
    """Builds units of work from a session factory and the engine that serves raw connections."""

    def __init__(self, session_factory, engine: Optional[AsyncEngine] = None):
        self.session_factory = session_factory
        self.engine = engine

    def create(self) -> UnitOfWork:
        return UnitOfWork(session=self.session_factory(), engine=self.engine)

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[UnitOfWork]:
        """Yield a unit of work and close it on every exit path."""
        async with self.create() as uow:
            yield uow
