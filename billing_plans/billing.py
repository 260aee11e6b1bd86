"""Subscription lifecycle helpers."""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from .constants import SubscriptionStatus
from .models import Subscription


def normalize_status(status_value: str | None) -> SubscriptionStatus | None:
    if not status_value:
        return None
    normalized = status_value.strip().lower()
    if normalized in {"cancelled", "canceled"}:
        return SubscriptionStatus.DELETED
    for candidate in SubscriptionStatus:
        if candidate.value == normalized:
            return candidate
    return None


def is_expired(subscription: Subscription | None, today: date | None = None) -> bool:
    """Whether a cancelled subscription has run past its last paid period.

    Only deleted subscriptions expire; the grace period lasts until (and
    including) ``next_bill_date``.
    """
    if subscription is None or subscription.status != SubscriptionStatus.DELETED:
        return False
    if subscription.next_bill_date is None:
        return False
    today = today or datetime.now(timezone.utc).date()
    return subscription.next_bill_date < today


def get_subscription(db: Session, user_id: int) -> Subscription | None:
    return db.scalar(select(Subscription).where(Subscription.user_id == user_id))


def record_subscription(
    db: Session,
    user_id: int,
    paddle_plan_id: str,
    status_value: str,
    next_bill_date: date | None = None,
    paddle_subscription_id: str | None = None,
) -> Subscription:
    """Create or update a user's subscription from provider-reported values.

    Raises:
        ValueError: if ``status_value`` is not a known provider status.
    """
    status = normalize_status(status_value)
    if status is None:
        raise ValueError(f"Unknown subscription status: {status_value!r}")

    subscription = get_subscription(db, user_id)
    if subscription is None:
        subscription = Subscription(user_id=user_id, paddle_plan_id=paddle_plan_id)
        db.add(subscription)

    subscription.paddle_plan_id = paddle_plan_id
    subscription.status = status
    subscription.next_bill_date = next_bill_date
    if paddle_subscription_id:
        subscription.paddle_subscription_id = paddle_subscription_id
    db.flush()
    return subscription
