"""Tests for the external mobile-money gateway adapter."""

from __future__ import annotations

import json
from decimal import Decimal
from uuid import UUID

import httpx
import pytest

from promo.boosts.gateway import ExternalGatewayAdapter
from promo.boosts.types import Customer, ExternalChannel, PurchaseIntent, WalletChannel
from promo.common.errors import GatewayError, NetworkError, ValidationError
from promo.common.http import ApiClient
from conftest import GATEWAY_BASE_URL, FakeBackend, envelope, failure

SERVICES_PATH = "/payments/payment-services/SORETI"


@pytest.fixture
def gateway(api: ApiClient) -> ExternalGatewayAdapter:
    return ExternalGatewayAdapter(
        api, services_url=f"{GATEWAY_BASE_URL}{SERVICES_PATH}", ttl=600
    )


def external_intent(**overrides) -> PurchaseIntent:
    values = {
        "listing_id": "listing-1",
        "type": "urgent",
        "duration_days": 3,
        "calculated_price": Decimal("60"),
        "channel": ExternalChannel("telebirr", "Telebirr"),
    }
    values.update(overrides)
    return PurchaseIntent(**values)


class TestProviders:
    @pytest.mark.asyncio
    async def test_lists_providers(self, gateway, backend: FakeBackend):
        providers = await gateway.list_providers()

        assert [p.label for p in providers] == ["Telebirr", "CBE Birr"]
        assert backend.requests[-1].url.host == "pay.test"

    @pytest.mark.asyncio
    async def test_aggregator_never_sees_the_token(self, gateway, backend: FakeBackend):
        await gateway.list_providers()

        assert "Authorization" not in backend.requests[-1].headers

    @pytest.mark.asyncio
    async def test_providers_are_cached(self, gateway, backend: FakeBackend):
        await gateway.list_providers()
        await gateway.list_providers()

        assert backend.count("GET", SERVICES_PATH) == 1


class TestCreateOrder:
    @pytest.mark.asyncio
    async def test_order_payload(self, gateway, backend: FakeBackend, customer: Customer):
        order = await gateway.create_order(external_intent(), customer)

        body = json.loads(backend.requests[-1].content)
        assert body["title"] == "Boost - urgent"
        assert body["paymentType"] == "C2B"
        assert body["amount"] == "60"
        assert body["phone_number"] == "251911000000"
        assert body["user_id"] == "user-1"
        assert body["payment_service_id"] == "telebirr"
        assert UUID(body["transaction_id"]).version == 4
        assert order.transaction_id == body["transaction_id"]
        assert order.url == f"https://checkout.test/pay/{order.transaction_id}"

    @pytest.mark.asyncio
    async def test_each_order_gets_a_new_transaction_id(self, gateway, customer):
        first = await gateway.create_order(external_intent(), customer)
        second = await gateway.create_order(external_intent(), customer)

        assert first.transaction_id != second.transaction_id

    @pytest.mark.asyncio
    async def test_phone_is_required(self, gateway, backend: FakeBackend):
        with pytest.raises(ValidationError, match="phone number"):
            await gateway.create_order(external_intent(), Customer(user_id="user-1"))

        assert backend.count("POST", "/payments/createOrder") == 0

    @pytest.mark.asyncio
    async def test_requires_external_channel(self, gateway, customer):
        with pytest.raises(ValidationError):
            await gateway.create_order(external_intent(channel=WalletChannel()), customer)

    @pytest.mark.asyncio
    async def test_requires_price(self, gateway, customer):
        with pytest.raises(ValidationError, match="Calculate the price"):
            await gateway.create_order(external_intent(calculated_price=None), customer)

    @pytest.mark.asyncio
    async def test_missing_url_is_gateway_error(self, gateway, backend, customer):
        backend.queue("POST", "/payments/createOrder", envelope({}))

        with pytest.raises(GatewayError):
            await gateway.create_order(external_intent(), customer)

    @pytest.mark.asyncio
    async def test_non_string_url_is_gateway_error(self, gateway, backend, customer):
        backend.queue("POST", "/payments/createOrder", envelope({"url": {"href": "x"}}))

        with pytest.raises(GatewayError):
            await gateway.create_order(external_intent(), customer)

    @pytest.mark.asyncio
    async def test_provider_rejection_is_gateway_error(self, gateway, backend, customer):
        backend.queue(
            "POST", "/payments/createOrder", failure(400, "Provider unavailable")
        )

        with pytest.raises(GatewayError, match="Provider unavailable"):
            await gateway.create_order(external_intent(), customer)

    @pytest.mark.asyncio
    async def test_transport_failure_stays_network_error(self, gateway, backend, customer):
        backend.queue("POST", "/payments/createOrder", httpx.ConnectError("down"))

        with pytest.raises(NetworkError):
            await gateway.create_order(external_intent(), customer)


class TestVerify:
    @pytest.mark.asyncio
    async def test_reports_status(self, gateway, backend: FakeBackend, customer):
        order = await gateway.create_order(external_intent(), customer)
        backend.payment_status[order.transaction_id] = "completed"

        record = await gateway.verify(order.transaction_id)

        assert record.status == "completed"
        assert record.is_settled
        assert record.amount == Decimal("60")

    @pytest.mark.asyncio
    async def test_pending_is_not_settled(self, gateway, customer):
        order = await gateway.create_order(external_intent(), customer)

        record = await gateway.verify(order.transaction_id)

        assert not record.is_settled
