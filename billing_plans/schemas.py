"""Pydantic schemas for API requests and responses."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .constants import BillingInterval, PlanKind, SubscriptionStatus


class RegisterRequest(BaseModel):
    email: str = Field(min_length=5, max_length=255)
    name: str = Field(min_length=2, max_length=200)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    trial_expiry_date: date | None
    created_at: datetime


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class MoneyOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    currency: str
    amount: Decimal


class PlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: PlanKind
    generation: int
    volume: str
    monthly_pageview_limit: int
    monthly_product_id: str | None
    yearly_product_id: str | None
    monthly_cost: MoneyOut | None = None
    yearly_cost: MoneyOut | None = None


class AvailablePlansOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    growth: list[PlanOut]
    business: list[PlanOut]


class SuggestionOut(BaseModel):
    usage: int
    enterprise: bool
    plan: PlanOut | None = None


class EnterprisePlanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    paddle_plan_id: str
    billing_interval: BillingInterval
    monthly_pageview_limit: int
    site_limit: int
    inserted_at: datetime


class EnterprisePlanPriceOut(BaseModel):
    enterprise_plan: EnterprisePlanOut
    price: MoneyOut


class SubscriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    paddle_plan_id: str
    status: SubscriptionStatus
    next_bill_date: date | None
    interval: str


class SubscriptionUpdateRequest(BaseModel):
    paddle_plan_id: str = Field(min_length=1, max_length=64)
    status: str = Field(min_length=1, max_length=32)
    next_bill_date: date | None = None
    paddle_subscription_id: str | None = Field(default=None, max_length=255)
