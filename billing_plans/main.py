"""FastAPI app exposing plan eligibility and pricing for the current user."""

from __future__ import annotations

import re
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import plans
from .auth import get_current_user, issue_token
from .billing import record_subscription
from .config import get_settings
from .constants import BillingInterval, PlanKind
from .db import get_db, init_db
from .exceptions import NoEnterprisePlanError, PriceLookupError
from .logging import configure_structlog
from .models import Subscription, User
from .paddle import PaddleClient, PriceProvider
from .schemas import (
    AuthResponse,
    AvailablePlansOut,
    EnterprisePlanOut,
    EnterprisePlanPriceOut,
    MoneyOut,
    PlanOut,
    RegisterRequest,
    SubscriptionOut,
    SubscriptionUpdateRequest,
    SuggestionOut,
    UserOut,
)

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    settings = get_settings()
    configure_structlog(log_level=settings.log_level, json_logs=settings.json_logs)
    init_db()
    yield


app = FastAPI(
    title="Billing Plans API",
    description="Plan eligibility, upgrade suggestions and localized pricing for analytics subscriptions.",
    version="0.1.0",
    lifespan=lifespan,
)


def get_price_provider() -> PriceProvider:
    return PaddleClient()


def customer_ip(request: Request) -> str:
    if request.client is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unable to determine customer IP.",
        )
    return request.client.host


def validate_email(email: str) -> None:
    if not EMAIL_REGEX.match(email):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Invalid email format.",
        )


def price_lookup_failed(exc: PriceLookupError) -> HTTPException:
    logger.error("price_lookup_failed", error=str(exc))
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail="Unable to fetch prices from the payment provider.",
    )


@app.get("/health")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/auth/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> AuthResponse:
    validate_email(payload.email)
    email = payload.email.strip().lower()
    if db.scalar(select(User).where(User.email == email)):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered.",
        )

    user = User(email=email, name=payload.name.strip())
    access_token, token = issue_token(user)
    db.add_all([user, token])
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Unable to register user with provided data.",
        ) from None

    db.refresh(user)
    logger.info("user_registered", user_id=user.id)
    return AuthResponse(
        access_token=access_token,
        token_type="bearer",
        user=UserOut.model_validate(user),
    )


@app.get("/billing/plans", response_model=AvailablePlansOut)
def get_available_plans(
    request: Request,
    with_prices: bool = False,
    user: User = Depends(get_current_user),
    price_provider: PriceProvider = Depends(get_price_provider),
) -> AvailablePlansOut:
    try:
        available = plans.available_plans_for(
            user.subscription,
            with_prices=with_prices,
            customer_ip=customer_ip(request) if with_prices else None,
            price_provider=price_provider,
        )
    except PriceLookupError as exc:
        raise price_lookup_failed(exc) from None
    return AvailablePlansOut.model_validate(available)


@app.get("/billing/plans/suggestion", response_model=SuggestionOut)
def get_suggested_plan(
    usage: int = Query(ge=0),
    user: User = Depends(get_current_user),
) -> SuggestionOut:
    suggestion = plans.suggest(user, usage)
    if isinstance(suggestion, PlanKind):
        return SuggestionOut(usage=usage, enterprise=True)
    return SuggestionOut(usage=usage, enterprise=False, plan=PlanOut.model_validate(suggestion))


@app.get("/billing/enterprise-plan", response_model=EnterprisePlanPriceOut)
def get_enterprise_plan(
    request: Request,
    user: User = Depends(get_current_user),
    price_provider: PriceProvider = Depends(get_price_provider),
) -> EnterprisePlanPriceOut:
    try:
        enterprise_plan, price = plans.latest_enterprise_plan_with_price(
            user,
            customer_ip(request),
            price_provider=price_provider,
        )
    except NoEnterprisePlanError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No enterprise plan configured.",
        ) from None
    except PriceLookupError as exc:
        raise price_lookup_failed(exc) from None

    return EnterprisePlanPriceOut(
        enterprise_plan=EnterprisePlanOut.model_validate(enterprise_plan),
        price=MoneyOut.model_validate(price),
    )


def serialize_subscription(subscription: Subscription) -> SubscriptionOut:
    interval = plans.subscription_interval(subscription)
    return SubscriptionOut(
        paddle_plan_id=subscription.paddle_plan_id,
        status=subscription.status,
        next_bill_date=subscription.next_bill_date,
        interval=interval.value if isinstance(interval, BillingInterval) else interval,
    )


@app.get("/billing/subscription", response_model=SubscriptionOut)
def read_subscription(user: User = Depends(get_current_user)) -> SubscriptionOut:
    if user.subscription is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No subscription.",
        )
    return serialize_subscription(user.subscription)


@app.put("/billing/subscription", response_model=SubscriptionOut)
def update_subscription(
    payload: SubscriptionUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SubscriptionOut:
    try:
        subscription = record_subscription(
            db,
            user.id,
            payload.paddle_plan_id,
            payload.status,
            next_bill_date=payload.next_bill_date,
            paddle_subscription_id=payload.paddle_subscription_id,
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from None
    db.commit()
    logger.info("subscription_recorded", user_id=user.id, paddle_plan_id=subscription.paddle_plan_id)
    return serialize_subscription(subscription)


@app.get("/billing/yearly-product-ids")
def list_yearly_product_ids() -> dict[str, list[str]]:
    return {"product_ids": plans.yearly_product_ids()}
