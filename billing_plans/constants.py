"""Static price-plan catalog and billing enums."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Final


class PlanKind(str, Enum):
    GROWTH = "growth"
    BUSINESS = "business"
    ENTERPRISE = "enterprise"


class BillingInterval(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PAST_DUE = "past_due"
    PAUSED = "paused"
    DELETED = "deleted"


@dataclass(frozen=True)
class Money:
    currency: str
    amount: Decimal

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


@dataclass(frozen=True)
class Plan:
    kind: PlanKind
    generation: int
    monthly_pageview_limit: int
    volume: str
    monthly_product_id: str | None
    yearly_product_id: str | None
    monthly_cost: Money | None = None
    yearly_cost: Money | None = None


FREE_PLAN_ID: Final[str] = "free_10k"
NOT_APPLICABLE: Final[str] = "N/A"

# Business tiers are versioned separately; older growth generations upgrade
# to the first business generation.
BUSINESS_GENERATION_FOR: Final[dict[int, int]] = {
    1: 3,
    2: 3,
    3: 3,
    4: 4,
}

VOLUME_LIMITS: Final[dict[str, int]] = {
    "10k": 10_000,
    "100k": 100_000,
    "200k": 200_000,
    "500k": 500_000,
    "1M": 1_000_000,
    "2M": 2_000_000,
    "5M": 5_000_000,
    "10M": 10_000_000,
    "20M": 20_000_000,
    "50M": 50_000_000,
    "150M": 150_000_000,
}


def _table(
    kind: PlanKind,
    generation: int,
    rows: list[tuple[str, str | None, str | None]],
) -> tuple[Plan, ...]:
    return tuple(
        Plan(
            kind=kind,
            generation=generation,
            monthly_pageview_limit=VOLUME_LIMITS[volume],
            volume=volume,
            monthly_product_id=monthly_id,
            yearly_product_id=yearly_id,
        )
        for volume, monthly_id, yearly_id in rows
    )


LEGACY_PLANS: Final[tuple[Plan, ...]] = _table(
    PlanKind.GROWTH,
    1,
    [
        ("10k", "558746", None),
        ("1M", "558156", "590753"),
        ("150M", None, "648089"),
    ],
)

PLANS_V1: Final[tuple[Plan, ...]] = _table(
    PlanKind.GROWTH,
    1,
    [
        ("10k", "558018", "572810"),
        ("100k", "558745", "590752"),
        ("200k", "597485", "597486"),
        ("500k", "597487", "597488"),
        ("1M", "597642", "597643"),
        ("2M", "597309", "597310"),
        ("5M", "597311", "597312"),
        ("10M", "642352", "642354"),
        ("20M", "642355", "642356"),
        ("50M", "650652", "650653"),
    ],
)

PLANS_V2: Final[tuple[Plan, ...]] = _table(
    PlanKind.GROWTH,
    2,
    [
        ("10k", "654177", "653232"),
        ("100k", "654178", "653234"),
        ("200k", "653237", "653236"),
        ("500k", "653238", "653239"),
        ("1M", "653240", "653242"),
        ("2M", "653253", "653254"),
        ("5M", "653255", "653256"),
        ("10M", "654181", "653257"),
        ("20M", "654182", "653258"),
        ("50M", "654183", "653259"),
    ],
)

PLANS_V3: Final[tuple[Plan, ...]] = _table(
    PlanKind.GROWTH,
    3,
    [
        ("10k", "749342", "749343"),
        ("100k", "749344", "749345"),
        ("200k", "749346", "749347"),
        ("500k", "749348", "749349"),
        ("1M", "749350", "749352"),
        ("2M", "749353", "749355"),
        ("5M", "749356", "749357"),
        ("10M", "749358", "749359"),
    ],
) + _table(
    PlanKind.BUSINESS,
    3,
    [
        ("10k", "857481", "857482"),
        ("100k", "857483", "857484"),
        ("200k", "857486", "857487"),
        ("500k", "857490", "857491"),
        ("1M", "857493", "857494"),
        ("2M", "857495", "857496"),
        ("5M", "857499", "857500"),
        ("10M", "857501", "857502"),
    ],
)

PLANS_V4: Final[tuple[Plan, ...]] = _table(
    PlanKind.GROWTH,
    4,
    [
        ("10k", "857097", "857079"),
        ("100k", "857098", "857080"),
        ("200k", "857099", "857081"),
        ("500k", "857100", "857082"),
        ("1M", "857101", "857083"),
        ("2M", "857102", "857084"),
        ("5M", "857103", "857085"),
        ("10M", "857104", "857086"),
    ],
) + _table(
    PlanKind.BUSINESS,
    4,
    [
        ("10k", "857105", "857087"),
        ("100k", "857106", "857088"),
        ("200k", "857107", "857089"),
        ("500k", "857108", "857090"),
        ("1M", "857109", "857091"),
        ("2M", "857110", "857092"),
        ("5M", "857111", "857093"),
        ("10M", "857112", "857094"),
    ],
)

PLANS_BY_GENERATION: Final[dict[int, tuple[Plan, ...]]] = {
    1: PLANS_V1,
    2: PLANS_V2,
    3: PLANS_V3,
    4: PLANS_V4,
}

LATEST_GENERATION: Final[int] = max(PLANS_BY_GENERATION)

CATALOG: Final[tuple[Plan, ...]] = LEGACY_PLANS + PLANS_V1 + PLANS_V2 + PLANS_V3 + PLANS_V4


def _index_catalog(plans: tuple[Plan, ...]) -> dict[str, Plan]:
    index: dict[str, Plan] = {}
    for plan in plans:
        for product_id in (plan.monthly_product_id, plan.yearly_product_id):
            if product_id is None:
                continue
            if product_id in index:
                raise ValueError(f"Duplicate product id in plan catalog: {product_id}")
            index[product_id] = plan
    return index


PLANS_BY_PRODUCT_ID: Final[dict[str, Plan]] = _index_catalog(CATALOG)

MONTHLY_PRODUCT_IDS: Final[frozenset[str]] = frozenset(
    plan.monthly_product_id for plan in CATALOG if plan.monthly_product_id
)
