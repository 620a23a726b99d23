"""Shared FastAPI dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from examprep.database import get_session
from examprep.progress.store import ProgressStore

get_db = get_session


async def get_store(db: AsyncSession = Depends(get_session)) -> ProgressStore:  # noqa: B008
    """Wrap the request's session in the progress store adapter."""
    return ProgressStore(db)
