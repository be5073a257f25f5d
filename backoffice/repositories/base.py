"""
Generic async repository (Data Access Layer).

Implements the Repository pattern on top of SQLAlchemy's ``AsyncSession``.
Concrete repositories inherit from ``BaseRepository[T]`` and add the
entity-specific queries the services need.

Design rationale:
- Generic typing (``ModelType``) avoids duplicating CRUD logic per entity.
- **Reads** go through :meth:`BaseRepository._read`.  A driver or connection
  failure there is re-raised as :class:`UpstreamFetchException` tagged with
  the table name.  A failed read must never look like an empty table: the
  capital figures computed from it would silently drop to zero.
- **IntegrityError** on writes is NOT caught here.  Each service maps it to
  its own domain error (duplicate month, vanished investor, ...).
- **OperationalError** on writes (connection loss, deadlock) rolls the
  session back and is re-raised, preventing dirty session leaks.
"""

import logging
from typing import Any, Awaitable, Callable, Generic, Optional, Type, TypeVar

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from backoffice.core.exceptions import UpstreamFetchException
from backoffice.core.resilience import db_circuit_breaker

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)
T = TypeVar("T")


class BaseRepository(Generic[ModelType]):
    """
    Generic CRUD repository for SQLModel entities.

    Parameters
    ----------
    model : Type[ModelType]
        The SQLModel class this repository manages.
    db : AsyncSession
        An active async database session (injected per-request).

    Resilience:
        Every database call is routed through the global ``db_circuit_breaker``.
        After repeated connection-level failures the circuit opens and calls
        fail fast with ``CircuitBreakerError`` (itself an
        ``UpstreamFetchException``) instead of waiting for a timeout.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    @property
    def source(self) -> str:
        """Table name reported when a read from this repository fails."""
        return self.model.__tablename__  # type: ignore[return-value]

    # ── Internal helpers ──

    async def _execute_with_circuit_breaker(
        self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        """Route any async callable through the circuit breaker."""
        return await db_circuit_breaker.call(func, *args, **kwargs)

    async def _read(self, func: Callable[[], Awaitable[T]]) -> T:
        """
        Run a read query through the circuit breaker.

        Any ``SQLAlchemyError`` becomes an ``UpstreamFetchException`` naming
        this repository's table.
        """
        try:
            return await self._execute_with_circuit_breaker(func)
        except UpstreamFetchException:
            raise
        except SQLAlchemyError as exc:
            logger.error("Read from %s failed: %s", self.source, exc)
            raise UpstreamFetchException(self.source) from exc

    async def _commit(self, operation: str) -> None:
        try:
            await self.db.commit()
        except OperationalError:
            await self.db.rollback()
            logger.error("OperationalError during %s for %s", operation, self.model.__name__)
            raise

    # ── Reads ──

    async def get(self, id: Any) -> Optional[ModelType]:
        """Fetch a single entity by primary key.  Returns ``None`` if not found."""

        async def _get() -> Optional[ModelType]:
            return await self.db.get(self.model, id)

        return await self._read(_get)

    # ── Writes ──

    async def create(self, obj_in: ModelType) -> ModelType:
        """
        Insert a new entity, commit, and return the refreshed instance.

        **OperationalError** triggers an automatic rollback.
        **IntegrityError** is NOT caught; services handle it with domain-specific messages.
        """

        async def _create() -> ModelType:
            self.db.add(obj_in)
            await self._commit("create")
            await self.db.refresh(obj_in)
            return obj_in

        return await self._execute_with_circuit_breaker(_create)

    async def add(self, obj_in: ModelType) -> ModelType:
        """
        Insert a new entity and flush it without committing.

        Used by services that need to check the persisted state before
        deciding whether to commit or roll back the transaction.
        """

        async def _add() -> ModelType:
            self.db.add(obj_in)
            await self.db.flush()
            return obj_in

        return await self._execute_with_circuit_breaker(_add)

    async def update(self, entity: ModelType) -> ModelType:
        """
        Persist changes to an already-tracked entity.

        The caller mutates the entity's attributes before calling this
        method.  We merge, commit, then refresh so the returned object
        reflects any DB-side defaults.
        """

        async def _update() -> ModelType:
            merged = await self.db.merge(entity)
            await self._commit("update")
            await self.db.refresh(merged)
            return merged

        return await self._execute_with_circuit_breaker(_update)

    async def delete(self, id: Any) -> bool:
        """
        Delete an entity by primary key.

        Returns ``True`` if the entity was found and deleted, ``False`` if
        it did not exist.
        """

        async def _delete() -> bool:
            entity = await self.db.get(self.model, id)
            if entity is None:
                return False
            await self.db.delete(entity)
            await self._commit("delete")
            return True

        return await self._execute_with_circuit_breaker(_delete)
