"""Web push subscription queries using SQLAlchemy Core."""

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncConnection

from ..tables import push_subscriptions


async def upsert_push_subscription(
    conn: AsyncConnection,
    user_id: int,
    endpoint: str,
    p256dh: str,
    auth: str,
) -> dict[str, Any]:
    """
    Store a browser push subscription.

    Endpoints are unique: re-subscribing an endpoint moves it to user_id
    and refreshes its keys.
    """
    stmt = insert(push_subscriptions).values(
        user_id=user_id,
        endpoint=endpoint,
        p256dh=p256dh,
        auth=auth,
    )
    result = await conn.execute(
        stmt.on_conflict_do_update(
            index_elements=["endpoint"],
            set_={
                "user_id": stmt.excluded.user_id,
                "p256dh": stmt.excluded.p256dh,
                "auth": stmt.excluded.auth,
            },
        ).returning(push_subscriptions)
    )
    return dict(result.mappings().first())


async def delete_push_subscription(
    conn: AsyncConnection,
    endpoint: str,
) -> int:
    """Remove a subscription by endpoint. Returns count deleted."""
    result = await conn.execute(
        delete(push_subscriptions).where(push_subscriptions.c.endpoint == endpoint)
    )
    return result.rowcount


async def delete_push_subscriptions_by_endpoints(
    conn: AsyncConnection,
    endpoints: list[str],
) -> int:
    """Remove several subscriptions at once. Returns count deleted."""
    if not endpoints:
        return 0
    result = await conn.execute(
        delete(push_subscriptions).where(push_subscriptions.c.endpoint.in_(endpoints))
    )
    return result.rowcount


async def get_push_subscriptions_for_user(
    conn: AsyncConnection,
    user_id: int,
) -> list[dict[str, Any]]:
    """Get all registered push subscriptions of a user."""
    result = await conn.execute(
        select(push_subscriptions)
        .where(push_subscriptions.c.user_id == user_id)
        .order_by(push_subscriptions.c.subscription_id)
    )
    return [dict(row) for row in result.mappings()]
