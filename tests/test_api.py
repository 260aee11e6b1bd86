from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from billing_plans import db
from billing_plans.constants import BillingInterval, SubscriptionStatus
from billing_plans.main import app, get_price_provider
from billing_plans.models import EnterprisePlan, Subscription
from billing_plans.paddle import PaddleClient
from factories import FailingPriceProvider, FakePriceProvider


@pytest.fixture()
def client(tmp_path):
    database_url = f"sqlite:///{tmp_path}/test.db"
    db.reset_engine(database_url)
    db.init_db()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def register_user(client: TestClient, email: str = "owner@example.com") -> tuple[int, str]:
    response = client.post(
        "/auth/register",
        json={
            "email": email,
            "name": "Owner User",
        },
    )
    assert response.status_code == 201, response.text
    body = response.json()
    return body["user"]["id"], body["access_token"]


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def insert_subscription(user_id: int, paddle_plan_id: str) -> None:
    with db.session_scope() as session:
        session.add(
            Subscription(
                user_id=user_id,
                paddle_plan_id=paddle_plan_id,
                status=SubscriptionStatus.ACTIVE,
            )
        )


def insert_enterprise_plan(user_id: int, paddle_plan_id: str, inserted_at: datetime) -> None:
    with db.session_scope() as session:
        session.add(
            EnterprisePlan(
                user_id=user_id,
                paddle_plan_id=paddle_plan_id,
                billing_interval=BillingInterval.YEARLY,
                monthly_pageview_limit=50_000_000,
                site_limit=500,
                inserted_at=inserted_at,
            )
        )


def test_register_rejects_duplicate_email(client: TestClient) -> None:
    register_user(client)

    duplicate = client.post("/auth/register", json={"email": "owner@example.com", "name": "Again"})
    assert duplicate.status_code == 409


def test_billing_endpoints_require_token(client: TestClient) -> None:
    assert client.get("/billing/plans").status_code == 401
    assert client.get("/billing/plans", headers=auth_headers("bogus")).status_code == 401


def test_available_plans_for_new_user(client: TestClient) -> None:
    _, token = register_user(client)

    response = client.get("/billing/plans", headers=auth_headers(token))

    assert response.status_code == 200, response.text
    body = response.json()
    assert {plan["generation"] for plan in body["growth"]} == {4}
    assert {plan["generation"] for plan in body["business"]} == {4}
    assert all(plan["monthly_cost"] is None for plan in body["growth"])


def test_available_plans_with_prices(client: TestClient) -> None:
    price_provider = FakePriceProvider()
    app.dependency_overrides[get_price_provider] = lambda: price_provider
    user_id, token = register_user(client)
    insert_subscription(user_id, "654177")

    response = client.get("/billing/plans", params={"with_prices": "true"}, headers=auth_headers(token))

    assert response.status_code == 200, response.text
    body = response.json()
    assert {plan["generation"] for plan in body["growth"]} == {2}
    assert {plan["generation"] for plan in body["business"]} == {3}
    assert body["growth"][0]["monthly_cost"]["currency"] == "EUR"
    assert price_provider.calls[0][1] == "testclient"


def test_available_plans_price_failure_is_bad_gateway(client: TestClient) -> None:
    app.dependency_overrides[get_price_provider] = FailingPriceProvider
    _, token = register_user(client)

    response = client.get("/billing/plans", params={"with_prices": "true"}, headers=auth_headers(token))

    assert response.status_code == 502


def test_suggestion(client: TestClient) -> None:
    user_id, token = register_user(client)
    insert_subscription(user_id, "558018")

    suggested = client.get("/billing/plans/suggestion", params={"usage": 10_000}, headers=auth_headers(token))
    assert suggested.status_code == 200, suggested.text
    assert suggested.json()["enterprise"] is False
    assert suggested.json()["plan"]["monthly_product_id"] == "558745"

    enterprise = client.get(
        "/billing/plans/suggestion",
        params={"usage": 100_000_000},
        headers=auth_headers(token),
    )
    assert enterprise.json() == {"usage": 100_000_000, "enterprise": True, "plan": None}


def test_enterprise_plan_with_price(client: TestClient) -> None:
    app.dependency_overrides[get_price_provider] = FakePriceProvider
    user_id, token = register_user(client)

    missing = client.get("/billing/enterprise-plan", headers=auth_headers(token))
    assert missing.status_code == 404

    now = datetime.now(timezone.utc)
    insert_enterprise_plan(user_id, "456", now - timedelta(hours=10))
    insert_enterprise_plan(user_id, "123", now)
    insert_enterprise_plan(user_id, "789", now - timedelta(minutes=2))

    response = client.get("/billing/enterprise-plan", headers=auth_headers(token))
    assert response.status_code == 200, response.text
    assert response.json()["enterprise_plan"]["paddle_plan_id"] == "123"
    assert response.json()["price"]["currency"] == "EUR"


def test_subscription_interval(client: TestClient) -> None:
    user_id, token = register_user(client)

    assert client.get("/billing/subscription", headers=auth_headers(token)).status_code == 404

    insert_subscription(user_id, "590752")
    response = client.get("/billing/subscription", headers=auth_headers(token))

    assert response.status_code == 200, response.text
    assert response.json()["interval"] == "yearly"
    assert response.json()["status"] == "active"


def test_yearly_product_ids(client: TestClient) -> None:
    response = client.get("/billing/yearly-product-ids")

    assert response.status_code == 200
    assert response.json()["product_ids"][:3] == ["590753", "648089", "572810"]


def test_update_subscription_records_provider_status(client: TestClient) -> None:
    _, token = register_user(client)

    created = client.put(
        "/billing/subscription",
        json={"paddle_plan_id": "857481", "status": "Active", "next_bill_date": "2030-01-01"},
        headers=auth_headers(token),
    )
    assert created.status_code == 200, created.text
    assert created.json()["status"] == "active"
    assert created.json()["interval"] == "monthly"

    cancelled = client.put(
        "/billing/subscription",
        json={"paddle_plan_id": "857482", "status": "cancelled", "next_bill_date": "2030-01-01"},
        headers=auth_headers(token),
    )
    assert cancelled.json()["status"] == "deleted"
    assert cancelled.json()["interval"] == "yearly"

    plans_response = client.get("/billing/plans", headers=auth_headers(token))
    assert {plan["generation"] for plan in plans_response.json()["business"]} == {3}


def test_update_subscription_rejects_unknown_status(client: TestClient) -> None:
    _, token = register_user(client)

    response = client.put(
        "/billing/subscription",
        json={"paddle_plan_id": "857481", "status": "trialing"},
        headers=auth_headers(token),
    )

    assert response.status_code == 422
    assert client.get("/billing/subscription", headers=auth_headers(token)).status_code == 404


def test_malformed_paddle_reply_is_bad_gateway(client: TestClient) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"success": True, "response": None}))
    app.dependency_overrides[get_price_provider] = lambda: PaddleClient(base_url="https://checkout.paddle.test", transport=transport)
    user_id, token = register_user(client)
    insert_enterprise_plan(user_id, "123", datetime.now(timezone.utc))

    assert client.get("/billing/plans", params={"with_prices": "true"}, headers=auth_headers(token)).status_code == 502
    assert client.get("/billing/enterprise-plan", headers=auth_headers(token)).status_code == 502
