"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions
and configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from deal_room.config import Settings, get_settings
from deal_room.infrastructure.database.engine import session_scope

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncSession


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield the request's database session.

    One session (and one transaction) per request: it commits after the
    route returns and rolls back if the route raises.
    """
    async with session_scope() as session:
        yield session


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()
