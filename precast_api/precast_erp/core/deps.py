from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from precast_erp.db.session import get_async_session
from precast_erp.services.ai.client import AIClient


# PUBLIC_INTERFACE
async def get_session(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncSession:
    """Return the request-scoped AsyncSession opened by get_async_session."""
    return session


# PUBLIC_INTERFACE
async def get_ai_client() -> AsyncGenerator[AIClient, None]:
    """
    Yield an AIClient configured from AppSettings and close it once the
    request is done. Tests override this dependency with a client on an
    httpx.MockTransport.
    """
    client = AIClient()
    try:
        yield client
    finally:
        await client.aclose()
