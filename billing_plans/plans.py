"""Plan eligibility, suggestions and billing intervals.

Every lookup works over the static catalog in :mod:`billing_plans.constants`
and a snapshot of the caller's subscription. A user's *generation* is taken
from the catalog row their subscription points at; users without a live
catalog subscription are offered the latest generation.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

import structlog

from .billing import is_expired
from .constants import (
    BUSINESS_GENERATION_FOR,
    CATALOG,
    FREE_PLAN_ID,
    LATEST_GENERATION,
    MONTHLY_PRODUCT_IDS,
    NOT_APPLICABLE,
    PLANS_BY_GENERATION,
    PLANS_BY_PRODUCT_ID,
    BillingInterval,
    Money,
    Plan,
    PlanKind,
)
from .exceptions import NoEnterprisePlanError, UnknownPlanError
from .models import EnterprisePlan, Subscription, User
from .paddle import PaddleClient, PriceProvider, lookup_price, require_price

logger = structlog.get_logger(__name__)

_YEARLY_PRODUCT_IDS: tuple[str, ...] = tuple(
    plan.yearly_product_id for plan in CATALOG if plan.yearly_product_id
)


@dataclass
class AvailablePlans:
    growth: list[Plan] = field(default_factory=list)
    business: list[Plan] = field(default_factory=list)


def all_plans() -> list[Plan]:
    return list(CATALOG)


def find(product_id: str | None) -> Plan | None:
    if not product_id:
        return None
    return PLANS_BY_PRODUCT_ID.get(product_id)


def get_plan(product_id: str) -> Plan:
    plan = find(product_id)
    if plan is None:
        raise UnknownPlanError(product_id)
    return plan


def yearly_product_ids() -> list[str]:
    return list(_YEARLY_PRODUCT_IDS)


def _owned_plan(subscription: Subscription | None) -> Plan | None:
    if subscription is None or is_expired(subscription):
        return None
    return find(subscription.paddle_plan_id)


def business_tier(subscription: Subscription | None) -> bool:
    owned_plan = _owned_plan(subscription)
    return owned_plan is not None and owned_plan.kind == PlanKind.BUSINESS


def _plans_of_kind(generation: int, kind: PlanKind) -> list[Plan]:
    return [plan for plan in PLANS_BY_GENERATION[generation] if plan.kind == kind]


def growth_plans_for(subscription: Subscription | None) -> list[Plan]:
    owned_plan = _owned_plan(subscription)
    if owned_plan is None or owned_plan.kind == PlanKind.BUSINESS:
        generation = LATEST_GENERATION
    else:
        generation = owned_plan.generation
    return _plans_of_kind(generation, PlanKind.GROWTH)


def business_plans_for(subscription: Subscription | None) -> list[Plan]:
    owned_plan = _owned_plan(subscription)
    if owned_plan is None:
        generation = LATEST_GENERATION
    else:
        generation = BUSINESS_GENERATION_FOR[owned_plan.generation]
    return _plans_of_kind(generation, PlanKind.BUSINESS)


def available_plans_for(
    subscription: Subscription | None,
    *,
    with_prices: bool = False,
    customer_ip: str | None = None,
    price_provider: PriceProvider | None = None,
) -> AvailablePlans:
    """Growth and business plans the subscriber may pick from.

    With ``with_prices`` every plan carries its localized monthly and yearly
    cost; ``customer_ip`` is then required. Prices come from one provider
    request per call and are not cached.
    """
    available = AvailablePlans(
        growth=growth_plans_for(subscription),
        business=business_plans_for(subscription),
    )
    if not with_prices:
        return available

    if not customer_ip:
        raise ValueError("customer_ip is required when with_prices is set")

    provider = price_provider or PaddleClient()
    product_ids = [
        product_id
        for plan in available.growth + available.business
        for product_id in (plan.monthly_product_id, plan.yearly_product_id)
        if product_id
    ]
    prices = provider.fetch_prices(product_ids, customer_ip)
    return AvailablePlans(
        growth=[_with_price(plan, prices) for plan in available.growth],
        business=[_with_price(plan, prices) for plan in available.business],
    )


def _with_price(plan: Plan, prices: dict[str, Money]) -> Plan:
    return replace(
        plan,
        monthly_cost=_price_for(plan.monthly_product_id, prices),
        yearly_cost=_price_for(plan.yearly_product_id, prices),
    )


def _price_for(product_id: str | None, prices: dict[str, Money]) -> Money | None:
    if product_id is None:
        return None
    return require_price(prices, product_id)


def suggest(user: User, usage_count: int) -> Plan | PlanKind:
    """Smallest plan that fits ``usage_count`` pageviews per month.

    Returns ``PlanKind.ENTERPRISE`` when the user already has a custom plan or
    when the usage outgrows every tier.
    """
    if user.enterprise_plans:
        return PlanKind.ENTERPRISE

    subscription = user.subscription
    if business_tier(subscription):
        candidates = business_plans_for(subscription)
    else:
        candidates = growth_plans_for(subscription)

    for plan in sorted(candidates, key=lambda plan: plan.monthly_pageview_limit):
        if usage_count < plan.monthly_pageview_limit:
            return plan

    logger.info("enterprise_usage_detected", user_id=user.id, usage_count=usage_count)
    return PlanKind.ENTERPRISE


def _inserted_at(enterprise_plan: EnterprisePlan) -> datetime:
    inserted_at = enterprise_plan.inserted_at
    # SQLite hands back naive datetimes
    if inserted_at.tzinfo is None:
        return inserted_at.replace(tzinfo=timezone.utc)
    return inserted_at


def latest_enterprise_plan(user: User) -> EnterprisePlan:
    if not user.enterprise_plans:
        raise NoEnterprisePlanError(user.id)
    return max(user.enterprise_plans, key=_inserted_at)


def latest_enterprise_plan_with_price(
    user: User,
    customer_ip: str,
    price_provider: PriceProvider | None = None,
) -> tuple[EnterprisePlan, Money]:
    enterprise_plan = latest_enterprise_plan(user)
    provider = price_provider or PaddleClient()
    price = lookup_price(provider, enterprise_plan.paddle_plan_id, customer_ip)
    return enterprise_plan, price


def _enterprise_plan_for(subscription: Subscription) -> EnterprisePlan | None:
    user = subscription.user
    if user is None:
        return None
    matching = [plan for plan in user.enterprise_plans if plan.paddle_plan_id == subscription.paddle_plan_id]
    if not matching:
        return None
    return max(matching, key=_inserted_at)


def subscription_interval(subscription: Subscription) -> BillingInterval | str:
    if subscription.paddle_plan_id == FREE_PLAN_ID:
        return NOT_APPLICABLE

    enterprise_plan = _enterprise_plan_for(subscription)
    if enterprise_plan is not None:
        return enterprise_plan.billing_interval

    if subscription.paddle_plan_id in _YEARLY_PRODUCT_IDS:
        return BillingInterval.YEARLY
    if subscription.paddle_plan_id in MONTHLY_PRODUCT_IDS:
        return BillingInterval.MONTHLY

    logger.warning(
        "unknown_subscription_plan",
        subscription_id=subscription.id,
        paddle_plan_id=subscription.paddle_plan_id,
    )
    return NOT_APPLICABLE
