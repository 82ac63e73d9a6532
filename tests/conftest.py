"""Test configuration and reusable fixtures for the promo test suite.

The marketplace API and the payment aggregator are replaced by an in-process
``FakeBackend`` served through ``httpx.MockTransport``, so every test runs
the real client, envelope handling and error mapping.
"""

from __future__ import annotations

import asyncio
import json
import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import httpx
import pytest
import pytest_asyncio

# Set up test environment variables before any imports
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")
os.environ.setdefault("ENVIRONMENT", "dev")

from promo.boosts.service import BoostService  # noqa: E402
from promo.boosts.types import Customer  # noqa: E402
from promo.common.http import ApiClient  # noqa: E402
from promo.common.retry import RetryConfig  # noqa: E402
from promo.config import Settings  # noqa: E402

API_BASE_URL = "http://api.test/api/v1"
GATEWAY_BASE_URL = "http://pay.test/api/v1"

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)

# =============================================================================
# FAKE BACKEND
# =============================================================================


def envelope(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"success": True, "data": data})


def failure(
    status_code: int,
    message: str | None = None,
    *,
    code: str | None = None,
    errors: list[dict[str, Any]] | None = None,
) -> httpx.Response:
    body: dict[str, Any] = {"success": False}
    if message is not None:
        body["message"] = message
    if code is not None:
        body["code"] = code
    if errors is not None:
        body["errors"] = errors
    return httpx.Response(status_code, json=body)


class FakeBackend:
    """Marketplace API plus payment aggregator, with state tests can poke.

    ``queue(method, path, response_or_exception)`` forces the next answers
    for a route; ``hold(method, path)`` returns an event the next call to the
    route waits on. Holding twice parks two calls, each on its own event.
    """

    def __init__(self) -> None:
        self.now = NOW
        self.tiers: list[dict[str, Any]] = [
            {
                "type": "featured",
                "name": "Featured",
                "description": "Pinned on top of its category",
                "pricePerDay": "50",
                "minDays": 1,
                "maxDays": 30,
            },
            {
                "type": "top_search",
                "name": "Top of search",
                "pricePerDay": "30",
                "minDays": 3,
                "maxDays": 14,
            },
            {
                "type": "urgent",
                "name": "Urgent",
                "pricePerDay": "20",
                "minDays": 1,
                "maxDays": 7,
            },
        ]
        self.credits: dict[str, Any] = {
            "hasActiveSubscription": True,
            "planName": "Pro",
            "canUseSubscriptionCredit": True,
            "totalCredits": 5,
            "usedCredits": 4,
            "remainingCredits": 1,
        }
        self.wallet: dict[str, Any] = {
            "id": "wallet-1",
            "balance": "1000",
            "currency": "ETB",
            "isActive": True,
        }
        self.boosts: list[dict[str, Any]] = []
        self.services: list[dict[str, Any]] = [
            {"id": "telebirr", "name": "Telebirr", "vendor_type": "SORETI"},
            {"id": "cbe-birr", "name": "CBE Birr", "vendor_type": "SORETI"},
        ]
        self.orders: dict[str, dict[str, Any]] = {}
        self.payment_status: dict[str, str] = {}

        self.calls: list[tuple[str, str]] = []
        self.requests: list[httpx.Request] = []
        self._queued: dict[tuple[str, str], list[httpx.Response | Exception]] = {}
        self._holds: dict[tuple[str, str], list[asyncio.Event]] = {}

    # -- test controls -------------------------------------------------------

    def queue(self, method: str, path: str, *answers: httpx.Response | Exception) -> None:
        self._queued.setdefault((method, path), []).extend(answers)

    def hold(self, method: str, path: str) -> asyncio.Event:
        event = asyncio.Event()
        self._holds.setdefault((method, path), []).append(event)
        return event

    def count(self, method: str, path: str) -> int:
        return self.calls.count((method, path))

    def add_boost(
        self,
        boost_id: str,
        *,
        listing_id: str = "listing-1",
        boost_type: str = "featured",
        expires_at: datetime,
        title: str = "Toyota Vitz 2015",
    ) -> dict[str, Any]:
        boost = {
            "id": boost_id,
            "listingId": listing_id,
            "type": boost_type,
            "createdAt": (expires_at - timedelta(days=7)).isoformat(),
            "expiresAt": expires_at.isoformat(),
            "status": "active" if expires_at > self.now else "expired",
            "listing": {"id": listing_id, "title": title},
        }
        self.boosts.append(boost)
        return boost

    # -- transport -----------------------------------------------------------

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/v1")
        key = (request.method, path)
        self.calls.append(key)
        self.requests.append(request)

        holds = self._holds.get(key)
        if holds:
            await holds.pop(0).wait()

        queued = self._queued.get(key)
        if queued:
            answer = queued.pop(0)
            if isinstance(answer, Exception):
                raise answer
            return answer

        return self._route(request, path)

    def _route(self, request: httpx.Request, path: str) -> httpx.Response:
        match request.method, path:
            case "GET", "/boosts/pricing":
                return envelope(self.tiers)
            case "GET", "/boosts/subscription-credits":
                return envelope(self.credits)
            case "GET", "/wallet":
                return envelope(self.wallet)
            case "GET", "/boosts/calculate":
                return self._calculate(request)
            case "POST", "/boosts":
                return self._create_boost(json.loads(request.content))
            case "GET", "/boosts/my":
                return envelope(self.boosts)
            case "GET", "/payments/payment-services/SORETI":
                return envelope(self.services)
            case "POST", "/payments/createOrder":
                return self._create_order(json.loads(request.content))
            case "GET", _ if path.startswith("/payments/") and path.endswith("/verify"):
                return self._verify(path.split("/")[2])
        return failure(404)

    def _tier(self, boost_type: str) -> dict[str, Any] | None:
        return next((t for t in self.tiers if t["type"] == boost_type), None)

    def _price(self, boost_type: str, days: int) -> Decimal:
        return Decimal(self._tier(boost_type)["pricePerDay"]) * days

    def _calculate(self, request: httpx.Request) -> httpx.Response:
        boost_type = request.url.params["type"]
        days = int(request.url.params["durationDays"])
        tier = self._tier(boost_type)
        if tier is None or not tier["minDays"] <= days <= tier["maxDays"]:
            return failure(400, "Invalid duration")
        return envelope({"price": str(self._price(boost_type, days))})

    def _create_boost(self, body: dict[str, Any]) -> httpx.Response:
        boost_type = body["type"]
        days = body["durationDays"]
        price = self._price(boost_type, days)
        method = body["paymentMethod"]

        if method == "subscription":
            if boost_type != "featured" or self.credits["remainingCredits"] <= 0:
                return failure(400, "No subscription credits remaining")
            self.credits = {
                **self.credits,
                "usedCredits": self.credits["usedCredits"] + 1,
                "remainingCredits": self.credits["remainingCredits"] - 1,
            }
        elif method == "wallet":
            balance = Decimal(self.wallet["balance"])
            if balance < price:
                return failure(400, "Insufficient wallet balance", code="INSUFFICIENT_BALANCE")
            self.wallet = {**self.wallet, "balance": str(balance - price)}
        else:
            return envelope({"redirectUrl": f"https://checkout.test/{method}"})

        boost = {
            "id": f"boost-{len(self.boosts) + 1}",
            "listingId": body["listingId"],
            "type": boost_type,
            "createdAt": self.now.isoformat(),
            "expiresAt": (self.now + timedelta(days=days)).isoformat(),
            "status": "active",
            "usedSubscriptionCredit": method == "subscription",
        }
        self.boosts.append(boost)
        return envelope(boost, status_code=201)

    def _create_order(self, body: dict[str, Any]) -> httpx.Response:
        transaction_id = body["transaction_id"]
        self.orders[transaction_id] = body
        self.payment_status[transaction_id] = "pending"
        return envelope({"url": f"https://checkout.test/pay/{transaction_id}"})

    def _verify(self, transaction_id: str) -> httpx.Response:
        if transaction_id not in self.orders:
            return failure(404, "Payment not found")
        order = self.orders[transaction_id]
        return envelope(
            {
                "transactionId": transaction_id,
                "status": self.payment_status[transaction_id],
                "amount": order["amount"],
                "provider": order["payment_service_id"],
            }
        )


# =============================================================================
# CLIENT & SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        api_base_url=API_BASE_URL,
        gateway_base_url=GATEWAY_BASE_URL,
        gateway_vendor="SORETI",
        auto_renew=False,
    )


@pytest.fixture
def no_delay_retry() -> RetryConfig:
    return RetryConfig(max_attempts=3, initial_delay=0, max_delay=0)


@pytest_asyncio.fixture
async def api(
    backend: FakeBackend, no_delay_retry: RetryConfig
) -> AsyncGenerator[ApiClient]:
    client = ApiClient(
        API_BASE_URL,
        token="test-token",
        retry=no_delay_retry,
        transport=httpx.MockTransport(backend.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
def customer() -> Customer:
    return Customer(user_id="user-1", phone="+251911000000")


@pytest.fixture
def service(
    api: ApiClient, test_settings: Settings, customer: Customer
) -> BoostService:
    return BoostService(api, config=test_settings, customer=customer, clock=lambda: NOW)
