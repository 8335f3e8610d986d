"""
Operation-scoped database sessions.

Repositories call `get_session()` per operation. Outside a transaction this
acquires a connection, commits and releases it straight away, so nothing
holds a connection while a service is waiting on the payment provider.

    async with transaction():
        await store.save_to_history(sub, reason)
        await store.delete_subscription(sub.id)
    # both committed together
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import get_logger
from common.db.session import AsyncSessionLocal
from common.db.context import (
    get_current_session,
    set_current_session,
    reset_current_session,
)

logger = get_logger(__name__)


@asynccontextmanager
async def transaction() -> AsyncGenerator[AsyncSession, None]:
    """
    Explicit transaction boundary.

    Nested calls reuse the outer session and leave the commit to it.
    Rolls back and re-raises on any exception.
    """
    existing = get_current_session()
    if existing is not None:
        yield existing
        return

    start = time.perf_counter()
    async with AsyncSessionLocal() as session:
        logger.debug(
            f"Transaction session acquire: {(time.perf_counter() - start) * 1000:.2f}ms"
        )
        token = set_current_session(session)
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Transaction rollback due to: {e}")
            await session.rollback()
            raise
        finally:
            reset_current_session(token)


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for a single operation.

    Reuses the enclosing transaction's session when there is one; otherwise
    acquires, commits and releases around the caller's block.
    """
    existing = get_current_session()
    if existing is not None:
        yield existing
        return

    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Operation rollback due to: {e}")
            await session.rollback()
            raise
