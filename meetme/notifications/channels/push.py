"""Web push (VAPID) notification delivery channel."""

import asyncio
import json
import logging

from pywebpush import WebPushException, webpush

from meetme.config import get_vapid_settings
from meetme.database import get_connection, get_transaction
from meetme.queries.push_subscriptions import (
    delete_push_subscription,
    delete_push_subscriptions_by_endpoints,
    get_push_subscriptions_for_user,
    upsert_push_subscription,
)

logger = logging.getLogger(__name__)

DEFAULT_ICON = "/icon-192x192.png"
DEFAULT_BADGE = "/badge-72x72.png"

# Push services answer these when the subscription no longer exists
GONE_STATUS_CODES = (404, 410)


class PushDeliveryError(Exception):
    """None of a user's subscriptions accepted the message."""


def build_payload(
    title: str,
    body: str,
    data: dict | None = None,
    icon: str | None = None,
    badge: str | None = None,
) -> str:
    """Serialize the JSON payload the service worker expects."""
    return json.dumps(
        {
            "title": title,
            "body": body,
            "icon": icon or DEFAULT_ICON,
            "badge": badge or DEFAULT_BADGE,
            "data": data or {},
        }
    )


def is_gone(error: BaseException) -> bool:
    """True if a push error means the endpoint was unsubscribed."""
    if not isinstance(error, WebPushException):
        return False
    response = getattr(error, "response", None)
    return response is not None and response.status_code in GONE_STATUS_CODES


def _send_to_subscription(subscription: dict, payload: str, vapid: dict) -> None:
    """Blocking send to one endpoint (run in a worker thread)."""
    webpush(
        subscription_info={
            "endpoint": subscription["endpoint"],
            "keys": {
                "p256dh": subscription["p256dh"],
                "auth": subscription["auth"],
            },
        },
        data=payload,
        vapid_private_key=vapid["private_key"],
        # webpush mutates the claims dict, so always pass a fresh one
        vapid_claims={"sub": vapid["subject"]},
    )


async def send_push_to_user(
    user_id: int,
    title: str,
    body: str,
    data: dict | None = None,
) -> dict:
    """
    Send a push notification to every registered subscription of a user.

    Subscriptions are delivered to independently. Ones the push service
    reports as gone (404/410) are deleted. When VAPID keys aren't
    configured this logs what would have been sent and returns.

    Returns:
        Dict with counts: {"sent": N, "failed": N, "removed": N}

    Raises:
        PushDeliveryError: if the user has subscriptions and none of them
            accepted the message (failed or gone)
    """
    vapid = get_vapid_settings()
    if not vapid:
        logger.info(f"Web push not configured, would send to user {user_id}: {title}")
        return {"sent": 0, "failed": 0, "removed": 0}

    async with get_connection() as conn:
        subscriptions = await get_push_subscriptions_for_user(conn, user_id)

    if not subscriptions:
        return {"sent": 0, "failed": 0, "removed": 0}

    payload = build_payload(title, body, data)
    results = await asyncio.gather(
        *(
            asyncio.to_thread(_send_to_subscription, sub, payload, vapid)
            for sub in subscriptions
        ),
        return_exceptions=True,
    )

    sent, failed = 0, 0
    gone_endpoints: list[str] = []
    for subscription, result in zip(subscriptions, results):
        if not isinstance(result, BaseException):
            sent += 1
        elif is_gone(result):
            gone_endpoints.append(subscription["endpoint"])
        else:
            failed += 1
            logger.warning(
                f"Push to subscription {subscription['subscription_id']} "
                f"of user {user_id} failed: {result}"
            )

    if gone_endpoints:
        async with get_transaction() as conn:
            await delete_push_subscriptions_by_endpoints(conn, gone_endpoints)
        logger.info(
            f"Removed {len(gone_endpoints)} expired push subscription(s) for user {user_id}"
        )

    if sent == 0:
        raise PushDeliveryError(
            f"No push subscription of user {user_id} accepted the message "
            f"({failed} failed, {len(gone_endpoints)} gone)"
        )

    return {"sent": sent, "failed": failed, "removed": len(gone_endpoints)}


async def subscribe(user_id: int, endpoint: str, p256dh: str, auth: str) -> dict:
    """Register (or re-assign) a browser push subscription."""
    async with get_transaction() as conn:
        return await upsert_push_subscription(conn, user_id, endpoint, p256dh, auth)


async def unsubscribe(endpoint: str) -> bool:
    """Remove a browser push subscription. Returns True if one was deleted."""
    async with get_transaction() as conn:
        return await delete_push_subscription(conn, endpoint) > 0


def get_vapid_public_key() -> str | None:
    """Public key the frontend needs to create subscriptions."""
    vapid = get_vapid_settings()
    return vapid["public_key"] if vapid else None
