"""
Session context tracking.

A `transaction()` block publishes its session in a ContextVar so that every
repository call made inside it shares one session and one commit.
"""

from contextvars import ContextVar, Token
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

_current_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "db_current_session", default=None
)


def get_current_session() -> Optional[AsyncSession]:
    """Session of the enclosing transaction, if any."""
    return _current_session.get()


def set_current_session(session: AsyncSession) -> Token:
    return _current_session.set(session)


def reset_current_session(token: Token) -> None:
    _current_session.reset(token)
