"""Shared FastAPI dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from curate.access.gateway import AccessGateway
from curate.access.policy import Caller
from curate.auth.dependencies import get_caller
from curate.config import get_settings
from curate.database import get_session


async def get_gateway(
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
) -> AccessGateway:
    """Build the access gateway for the current request's caller."""
    settings = get_settings()
    return AccessGateway(
        db,
        caller,
        open_system_writes=settings.open_system_writes,
        system_writer_role=settings.system_writer_role,
    )
