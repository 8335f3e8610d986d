from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import trace_span
from common.db.scoped import get_session

EntityType = TypeVar("EntityType")
DomainModelType = TypeVar("DomainModelType", bound=BaseModel)
CreateModelType = TypeVar("CreateModelType", bound=BaseModel)
UpdateModelType = TypeVar("UpdateModelType", bound=BaseModel)


class BaseRepository(Generic[EntityType, DomainModelType]):
    """
    CRUD over one table, returning pydantic domain models.

    Pass `db_session` to pin every call to a caller-managed session (tests,
    request-scoped work). Without it each call goes through `get_session()`,
    which joins an enclosing `transaction()` or opens a short-lived session.
    """

    def __init__(
        self,
        entity_class: Type[EntityType],
        domain_class: Type[DomainModelType],
        db_session: Optional[AsyncSession] = None,
    ):
        self.entity_class = entity_class
        self.domain_class = domain_class
        self._explicit_session = db_session

    @asynccontextmanager
    async def _get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if self._explicit_session is not None:
            yield self._explicit_session
        else:
            async with get_session() as session:
                yield session

    def _entity_to_domain(self, entity: EntityType) -> DomainModelType:
        return self.domain_class.model_validate(entity)

    def _entities_to_domain(self, entities: List[EntityType]) -> List[DomainModelType]:
        return [self._entity_to_domain(entity) for entity in entities]

    @trace_span
    async def get(self, id: Any) -> Optional[DomainModelType]:
        async with self._get_session() as session:
            entity = await session.get(self.entity_class, id, populate_existing=True)
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def create(self, create_model: CreateModelType) -> DomainModelType:
        """Insert a row from a typed create model and return it with its id."""
        data = create_model.model_dump(exclude_none=True)
        db_obj = self.entity_class(**data)
        async with self._get_session() as session:
            session.add(db_obj)
            await session.flush()
            await session.refresh(db_obj)
            return self._entity_to_domain(db_obj)

    @trace_span
    async def update(
        self, id: Any, update_model: UpdateModelType
    ) -> Optional[DomainModelType]:
        """
        Apply the fields explicitly set on `update_model`.

        Fields set to None are written as NULL, which is how pending-change
        columns get cleared.
        """
        data = update_model.model_dump(exclude_unset=True)
        if not data:
            return await self.get(id)

        async with self._get_session() as session:
            await session.execute(
                update(self.entity_class)
                .where(self.entity_class.id == id)
                .values(data)
                .execution_options(synchronize_session=False)
            )
            await session.flush()
        return await self.get(id)

    @trace_span
    async def delete(self, id: Any) -> bool:
        async with self._get_session() as session:
            result = await session.execute(
                delete(self.entity_class)
                .where(self.entity_class.id == id)
                .execution_options(synchronize_session=False)
            )
            await session.flush()
            return result.rowcount > 0

    @trace_span
    async def get_multi(self, skip: int = 0, limit: int = 100) -> List[DomainModelType]:
        query = select(self.entity_class).offset(skip).limit(limit)
        async with self._get_session() as session:
            result = await session.execute(query)
            return self._entities_to_domain(result.scalars().all())
