from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from sqlalchemy.orm import Session

from billing_plans import billing
from billing_plans.billing import get_subscription, is_expired, normalize_status, record_subscription
from billing_plans.constants import SubscriptionStatus
from billing_plans.models import Subscription
from factories import new_user, subscribe_to_plan

TODAY = date(2024, 3, 15)


def build_subscription(status: SubscriptionStatus, next_bill_date: date | None) -> Subscription:
    return Subscription(paddle_plan_id="558018", status=status, next_bill_date=next_bill_date)


def test_deleted_subscription_past_bill_date_is_expired() -> None:
    subscription = build_subscription(SubscriptionStatus.DELETED, date(2024, 3, 14))
    assert is_expired(subscription, today=TODAY) is True


def test_deleted_subscription_is_live_until_bill_date() -> None:
    assert is_expired(build_subscription(SubscriptionStatus.DELETED, TODAY), today=TODAY) is False
    assert is_expired(build_subscription(SubscriptionStatus.DELETED, date(2024, 4, 1)), today=TODAY) is False


def test_active_subscription_never_expires() -> None:
    subscription = build_subscription(SubscriptionStatus.ACTIVE, date(2020, 1, 1))
    assert is_expired(subscription, today=TODAY) is False


def test_deleted_subscription_without_bill_date_is_not_expired() -> None:
    assert is_expired(build_subscription(SubscriptionStatus.DELETED, None), today=TODAY) is False


def test_missing_subscription_is_not_expired() -> None:
    assert is_expired(None) is False


def test_normalize_status() -> None:
    assert normalize_status("Active") is SubscriptionStatus.ACTIVE
    assert normalize_status(" past_due ") is SubscriptionStatus.PAST_DUE
    assert normalize_status("cancelled") is SubscriptionStatus.DELETED
    assert normalize_status("deleted") is SubscriptionStatus.DELETED
    assert normalize_status("trialing") is None
    assert normalize_status(None) is None


def test_get_subscription(session: Session) -> None:
    user = subscribe_to_plan(session, new_user(session), "558018")
    other_user = new_user(session)

    assert get_subscription(session, user.id).paddle_plan_id == "558018"
    assert get_subscription(session, other_user.id) is None


def test_expiry_compares_against_utc_date(monkeypatch: pytest.MonkeyPatch) -> None:
    class LateEvening(datetime):
        @classmethod
        def now(cls, tz=None):
            return datetime(2024, 3, 15, 23, 30, tzinfo=timezone.utc).astimezone(tz)

    monkeypatch.setattr(billing, "datetime", LateEvening)

    assert is_expired(build_subscription(SubscriptionStatus.DELETED, date(2024, 3, 14))) is True
    assert is_expired(build_subscription(SubscriptionStatus.DELETED, date(2024, 3, 15))) is False


def test_record_subscription_creates_then_updates(session: Session) -> None:
    user = new_user(session)

    created = record_subscription(session, user.id, "558018", "active", next_bill_date=date(2030, 1, 1))
    session.commit()
    assert created.status is SubscriptionStatus.ACTIVE

    updated = record_subscription(
        session,
        user.id,
        "572810",
        "Cancelled",
        next_bill_date=date(2030, 1, 1),
        paddle_subscription_id="sub_42",
    )
    session.commit()

    assert updated.id == created.id
    assert updated.paddle_plan_id == "572810"
    assert updated.status is SubscriptionStatus.DELETED
    assert get_subscription(session, user.id).paddle_subscription_id == "sub_42"


def test_record_subscription_rejects_unknown_status(session: Session) -> None:
    user = new_user(session)

    with pytest.raises(ValueError, match="trialing"):
        record_subscription(session, user.id, "558018", "trialing")
    assert get_subscription(session, user.id) is None
