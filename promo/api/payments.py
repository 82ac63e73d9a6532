"""Wallet and external payment endpoints."""

from __future__ import annotations

from decimal import Decimal

from promo.api.parsing import parse, parse_list
from promo.boosts.models import PaymentRecord, PaymentService, Wallet
from promo.common.http import ApiClient


async def get_wallet(api: ApiClient) -> Wallet:
    return parse(Wallet, await api.get("/wallet"))


async def get_payment_services(api: ApiClient, url: str) -> list[PaymentService]:
    """External providers offered by the aggregator at ``url`` (absolute)."""
    return parse_list(PaymentService, await api.get(url))


async def create_order(
    api: ApiClient,
    *,
    title: str,
    amount: Decimal,
    transaction_id: str,
    user_id: str,
    phone_number: str,
    payment_service_id: str,
) -> str | None:
    """Create a customer-to-business order with the external provider.

    Returns:
        The provider checkout URL, or None when the response carries none.
    """
    data = await api.post(
        "/payments/createOrder",
        json={
            "title": title,
            "paymentType": "C2B",
            "transaction_id": transaction_id,
            "user_id": user_id,
            "amount": str(amount),
            "phone_number": phone_number,
            "payment_service_id": payment_service_id,
        },
    )
    if isinstance(data, dict):
        url = data.get("url")
        return url if isinstance(url, str) and url else None
    return None


async def verify_payment(api: ApiClient, transaction_id: str) -> PaymentRecord:
    return parse(PaymentRecord, await api.get(f"/payments/{transaction_id}/verify"))
