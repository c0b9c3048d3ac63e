"""
Repository abstract base class and generic implementation.

Predicates are SQLAlchemy boolean clauses (``Card.pan == "6037..."``) or callables
that build one from the model class (``lambda m: m.pan == "6037..."``). Reads use
the entity's natural order, i.e. ascending primary key.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Iterable, List, Optional, Type, TypeVar, Union

from sqlalchemy import and_, asc, desc, inspect as sa_inspect, select as sa_select
from sqlalchemy.sql import ClauseElement
from sqlmodel import SQLModel, Field, select, col, func
from sqlmodel.ext.asyncio.session import AsyncSession

from framework.exceptions.handler import AmbiguousMatchError, EntityNotFoundError
from framework.logging.logger import get_logger
from .pagination import DEFAULT_PAGE_SIZE, PagedResult, paginate

T = TypeVar("T", bound=SQLModel)

Predicate = Union[ClauseElement, Callable[[Any], ClauseElement]]
OrderKey = Union[Any, Callable[[Any], Any]]

logger = get_logger("repository")


class SoftDeleteMixin(SQLModel):
    """Marks an entity as soft-deletable; deleted rows are hidden from default reads."""
    is_deleted: bool = Field(default=False, index=True)
    deleted_at: Optional[datetime] = Field(default=None)


class IRepository(ABC, Generic[T]):
    """Repository interface; defines standard data access API."""

    @abstractmethod
    async def get_by_id(self, id: Any) -> Optional[T]:
        """Get entity by primary key."""
        pass

    @abstractmethod
    async def get_all(self) -> List[T]:
        """Get a detached snapshot of all entities."""
        pass

    @abstractmethod
    async def find(self, predicate: Predicate) -> List[T]:
        """Get a detached list of entities matching predicate."""
        pass

    @abstractmethod
    async def insert(self, entity: T) -> T:
        """Stage entity for creation."""
        pass

    @abstractmethod
    async def update(self, entity: T) -> T:
        """Stage entity changes."""
        pass

    @abstractmethod
    async def delete(self, entity: T) -> None:
        """Soft or hard delete entity."""
        pass


class Repository(IRepository[T]):
    """Generic repository implementation with SQLModel CRUD; subclasses can add custom queries."""

    def __init__(self, session: AsyncSession, model: Type[T]):
        """Initialize repository with session and model."""
        self.session = session
        self.model = model
        self._soft_delete = issubclass(model, SoftDeleteMixin)

    # --- statement building ---

    def _clause(self, predicate: Optional[Predicate]):
        if predicate is None:
            return None
        if isinstance(predicate, ClauseElement) or hasattr(predicate, "__clause_element__"):
            return predicate
        if callable(predicate):
            return predicate(self.model)
        return predicate

    def _criteria(self, predicate: Optional[Predicate] = None, ignore_filters: bool = False) -> list:
        criteria = []
        if self._soft_delete and not ignore_filters:
            criteria.append(col(self.model.is_deleted) == False)
        clause = self._clause(predicate)
        if clause is not None:
            criteria.append(clause)
        return criteria

    def _natural_order(self, descending: bool = False) -> list:
        keys = sa_inspect(self.model).primary_key
        return [desc(key) if descending else asc(key) for key in keys]

    def query(self, predicate: Optional[Predicate] = None, ignore_filters: bool = False):
        """Lazy filtered view: an unexecuted select, re-run on every execution."""
        return select(self.model).where(*self._criteria(predicate, ignore_filters))

    async def _first(self, predicate, descending: bool = False, ignore_filters: bool = False) -> Optional[T]:
        statement = (
            self.query(predicate, ignore_filters)
            .order_by(*self._natural_order(descending))
            .limit(1)
        )
        result = await self.session.exec(statement)
        return result.first()

    async def _detached(self, predicate=None, descending: bool = False, limit: Optional[int] = None) -> List[T]:
        # Column-level select: rows never enter the identity map, instances are fresh copies
        table = self.model.__table__
        statement = (
            sa_select(*table.columns)
            .where(*self._criteria(predicate))
            .order_by(*self._natural_order(descending))
        )
        if limit is not None:
            statement = statement.limit(limit)
        result = await self.session.exec(statement)
        return [self.model(**dict(row)) for row in result.mappings()]

    async def _attach(self, entity: T) -> T:
        """Bring entity into the session; its row must already exist."""
        if entity in self.session:
            return entity
        merged = await self.session.merge(entity)
        # merge() of an unknown key yields a new pending row
        if sa_inspect(merged).pending:
            self.session.expunge(merged)
            raise EntityNotFoundError(
                f"{self.model.__name__} {sa_inspect(self.model).primary_key_from_instance(entity)} does not exist"
            )
        return merged

    # --- reads ---

    async def get_all(self) -> List[T]:
        """Get a detached snapshot of all entities."""
        return await self._detached()

    async def find(self, predicate: Predicate) -> List[T]:
        """Get a detached list of entities matching predicate."""
        return await self._detached(predicate)

    async def any(self, predicate: Optional[Predicate] = None) -> bool:
        """Existence check (EXISTS subquery, stops at the first match)."""
        result = await self.session.exec(select(self.query(predicate).exists()))
        return bool(result.one())

    async def count(self, predicate: Optional[Predicate] = None) -> int:
        """Count entities matching predicate."""
        statement = select(func.count()).select_from(self.model).where(*self._criteria(predicate))
        result = await self.session.exec(statement)
        return result.one()

    async def get_by_id(self, id: Any) -> Optional[T]:
        """Get entity by primary key; soft-deleted rows count as missing."""
        entity = await self.session.get(self.model, id)
        if entity is not None and self._soft_delete and entity.is_deleted:
            return None
        return entity

    async def get_entity(self, predicate: Predicate) -> Optional[T]:
        return await self._first(predicate)

    async def get_entity_ignore_filter(self, predicate: Predicate) -> Optional[T]:
        """Like get_entity, but also sees soft-deleted rows."""
        return await self._first(predicate, ignore_filters=True)

    async def get_last_entity(self, predicate: Predicate) -> Optional[T]:
        return await self._first(predicate, descending=True)

    async def first_or_default(self, predicate: Optional[Predicate] = None) -> Optional[T]:
        return await self._first(predicate)

    async def first(self, predicate: Optional[Predicate] = None) -> T:
        entity = await self._first(predicate)
        if entity is None:
            raise EntityNotFoundError(f"No {self.model.__name__} matched")
        return entity

    async def last_or_default(self, predicate: Optional[Predicate] = None) -> Optional[T]:
        return await self._first(predicate, descending=True)

    async def last(self, predicate: Optional[Predicate] = None) -> T:
        entity = await self._first(predicate, descending=True)
        if entity is None:
            raise EntityNotFoundError(f"No {self.model.__name__} matched")
        return entity

    async def single_or_default(self, predicate: Optional[Predicate] = None) -> Optional[T]:
        """Unique match or None; more than one match is an error."""
        # Two rows are enough to tell "one" from "many"
        statement = self.query(predicate).order_by(*self._natural_order()).limit(2)
        matches = (await self.session.exec(statement)).all()
        if len(matches) > 1:
            raise AmbiguousMatchError(f"More than one {self.model.__name__} matched")
        return matches[0] if matches else None

    async def single(self, predicate: Optional[Predicate] = None) -> T:
        entity = await self.single_or_default(predicate)
        if entity is None:
            raise EntityNotFoundError(f"No {self.model.__name__} matched")
        return entity

    async def get_top(self, count: int, predicate: Optional[Predicate] = None) -> List[T]:
        """First `count` entities in natural order."""
        return await self._detached(predicate, limit=count)

    async def get_last(self, count: int, predicate: Optional[Predicate] = None) -> List[T]:
        """Last `count` entities, newest key first."""
        return await self._detached(predicate, descending=True, limit=count)

    async def find_one(self, **filters) -> Optional[T]:
        """Find one entity by filters (e.g. mobile_number='0912...')."""
        return await self._first(self._equals(filters))

    async def find_all(self, **filters) -> List[T]:
        """Find entities by filters."""
        statement = self.query(self._equals(filters)).order_by(*self._natural_order())
        result = await self.session.exec(statement)
        return list(result.all())

    def _equals(self, filters: dict):
        columns = set(self.model.__table__.columns.keys())
        unknown = [key for key in filters if key not in columns]
        if unknown:
            raise AttributeError(f"{self.model.__name__} has no column(s): {', '.join(unknown)}")
        clauses = [getattr(self.model, key) == value for key, value in filters.items()]
        return and_(*clauses) if clauses else None

    # --- paging ---

    async def get_paged(
        self,
        page_number: int,
        page_size: int = DEFAULT_PAGE_SIZE,
        ascending: bool = False,
        predicate: Optional[Predicate] = None,
        order_by: Optional[OrderKey] = None,
    ) -> PagedResult:
        """Page through entities; ordered by `order_by` (descending unless ascending=True)."""
        statement = self.query(predicate)
        if order_by is not None:
            key = self._clause(order_by)
            statement = statement.order_by(asc(key) if ascending else desc(key), *self._natural_order())
        else:
            statement = statement.order_by(*self._natural_order())
        return await paginate(self.session, statement, page_number, page_size)

    async def get_paged_query(self, page_number: int, page_size: int, query) -> PagedResult:
        """Page through a caller-built statement (usually from query())."""
        return await paginate(self.session, query, page_number, page_size)

    # --- writes (staged until UnitOfWork.save_changes) ---

    async def insert(self, entity: T) -> T:
        self.session.add(entity)
        return entity

    async def add_range(self, entities: Iterable[T]) -> List[T]:
        entities = list(entities)
        self.session.add_all(entities)
        return entities

    async def update(self, entity: T) -> T:
        """Mark entity as modified; detached copies are merged back into the session.

        Raises EntityNotFoundError when no row has the entity's key.
        """
        return await self._attach(entity)

    async def update_range(self, entities: Iterable[T]) -> List[T]:
        return [await self.update(entity) for entity in entities]

    async def remove(self, entity: T) -> None:
        """Stage a hard delete."""
        await self.session.delete(await self._attach(entity))

    async def remove_range(self, entities: Iterable[T]) -> None:
        for entity in entities:
            await self.remove(entity)

    async def delete(self, entity: T) -> None:
        """Soft delete for SoftDeleteMixin entities, hard delete otherwise."""
        if not self._soft_delete:
            await self.remove(entity)
            return
        target = await self._attach(entity)
        target.is_deleted = True
        target.deleted_at = datetime.now(timezone.utc)
        self.session.add(target)
        logger.debug(f"Soft-deleted {self.model.__name__} {sa_inspect(target).identity}")

    async def delete_range(self, entities: Iterable[T]) -> None:
        for entity in entities:
            await self.delete(entity)

    async def delete_by_id(self, id: Any) -> bool:
        """Delete entity by primary key; False when it does not exist."""
        entity = await self.get_by_id(id)
        if entity is None:
            return False
        await self.delete(entity)
        return True

    # --- writes with an immediate commit ---

    async def add_and_save(self, entity: T) -> T:
        """Insert and commit right away (does not wait for save_changes)."""
        self.session.add(entity)
        await self.session.commit()
        await self.session.refresh(entity)
        return entity

    async def update_and_save(self, entity: T) -> T:
        """Update and commit right away (does not wait for save_changes)."""
        merged = await self._attach(entity)
        await self.session.commit()
        return merged
