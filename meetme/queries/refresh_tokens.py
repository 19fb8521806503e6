"""Refresh token maintenance queries using SQLAlchemy Core."""

from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import refresh_tokens


async def cleanup_expired_tokens(
    conn: AsyncConnection,
    now: datetime | None = None,
) -> int:
    """Delete tokens whose expiry has passed. Returns count deleted."""
    cutoff = now or datetime.now(timezone.utc)
    result = await conn.execute(
        delete(refresh_tokens).where(refresh_tokens.c.expires_at < cutoff)
    )
    return result.rowcount
