"""Paddle price lookups.

Prices are fetched from Paddle's public checkout API, which localizes list
prices (currency and tax region) from the customer's IP address.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation
from typing import Protocol

import httpx
import structlog

from .config import get_settings
from .constants import Money
from .exceptions import PriceLookupError

logger = structlog.get_logger(__name__)

PRICES_PATH = "/api/2.0/prices"


class PriceProvider(Protocol):
    def fetch_prices(self, product_ids: Iterable[str], customer_ip: str) -> dict[str, Money]: ...


class PaddleClient:
    """Client for the Paddle checkout prices endpoint."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.prices_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.paddle_timeout_seconds
        self._transport = transport

    def fetch_prices(self, product_ids: Iterable[str], customer_ip: str) -> dict[str, Money]:
        """Return the localized monthly list price for each product id.

        Raises:
            PriceLookupError: on transport errors, non-2xx replies, or when
                Paddle reports ``success: false``.
        """
        ids = [product_id for product_id in product_ids if product_id]
        if not ids:
            return {}

        params = {"product_ids": ",".join(ids), "customer_ip": customer_ip}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(f"{self.base_url}{PRICES_PATH}", params=params)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("paddle_price_fetch_failed", product_ids=ids, error=str(exc))
            raise PriceLookupError(f"Paddle price lookup failed: {exc}") from exc

        if not isinstance(payload, dict):
            logger.warning("paddle_price_fetch_malformed", product_ids=ids, body_type=type(payload).__name__)
            raise PriceLookupError("Paddle price lookup returned a non-object body")

        if not payload.get("success"):
            error = payload.get("error")
            message = error.get("message", "unknown error") if isinstance(error, dict) else error
            logger.warning("paddle_price_fetch_rejected", product_ids=ids, error=error)
            raise PriceLookupError(f"Paddle rejected price lookup: {message or 'unknown error'}")

        body = payload.get("response")
        products = body.get("products") if isinstance(body, dict) else None
        if not isinstance(products, list):
            logger.warning("paddle_price_fetch_malformed", product_ids=ids, response=body)
            raise PriceLookupError("Paddle price lookup returned no product list")

        prices = _parse_products(products)
        logger.debug("paddle_prices_fetched", requested=len(ids), received=len(prices))
        return prices

    def lookup_price(self, product_id: str, customer_ip: str) -> Money:
        return lookup_price(self, product_id, customer_ip)


def require_price(prices: dict[str, Money], product_id: str) -> Money:
    try:
        return prices[product_id]
    except KeyError:
        raise PriceLookupError(f"Paddle returned no price for product {product_id}") from None


def lookup_price(provider: PriceProvider, product_id: str, customer_ip: str) -> Money:
    """Price a single product through any ``PriceProvider``."""
    return require_price(provider.fetch_prices([product_id], customer_ip), product_id)


def _parse_products(products: list) -> dict[str, Money]:
    prices: dict[str, Money] = {}
    for product in products:
        try:
            amount = Decimal(str(product["list_price"]["net"]))
            prices[str(product["product_id"])] = Money(currency=product["currency"], amount=amount)
        except (KeyError, TypeError, InvalidOperation) as exc:
            raise PriceLookupError(f"Malformed Paddle price entry: {product!r}") from exc
    return prices
