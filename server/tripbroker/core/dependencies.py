"""FastAPI dependencies for the application container and database sessions."""

from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..bootstrap import Container


def get_container(request: Request) -> Container:
    """Components wired at startup and stored on the application state."""
    return request.app.state.container


async def get_db(container: Container = Depends(get_container)) -> AsyncGenerator[AsyncSession, None]:
    """
    Database dependency that provides async database sessions.

    Yields:
        AsyncSession: Database session bound to the container's engine
    """
    async with container.session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# Define dependencies to avoid B008 linting errors
CONTAINER_DEPENDENCY = Depends(get_container)
DB_DEPENDENCY = Depends(get_db)
