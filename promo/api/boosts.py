"""Boost endpoints of the marketplace API.

One coroutine per endpoint. Payloads are validated into models here so the
rest of the package never touches raw JSON.
"""

from __future__ import annotations

from decimal import Decimal

from promo.api.parsing import parse, parse_list
from promo.boosts.models import (
    Boost,
    BoostPricingTier,
    PriceQuote,
    RedirectInstruction,
    SubscriptionCredit,
)
from promo.common.http import ApiClient

# -----------------------------------------------------------------------------
# Catalog
# -----------------------------------------------------------------------------


async def get_pricing(api: ApiClient) -> list[BoostPricingTier]:
    """All promotion types with per-day price and duration bounds."""
    return parse_list(BoostPricingTier, await api.get("/boosts/pricing"))


async def calculate_price(api: ApiClient, boost_type: str, duration_days: int) -> Decimal:
    """Authoritative price for ``boost_type`` over ``duration_days``."""
    data = await api.get(
        "/boosts/calculate",
        params={"type": boost_type, "durationDays": duration_days},
    )
    return parse(PriceQuote, data).price


# -----------------------------------------------------------------------------
# Entitlements & purchases
# -----------------------------------------------------------------------------


async def get_subscription_credits(api: ApiClient) -> SubscriptionCredit:
    return parse(SubscriptionCredit, await api.get("/boosts/subscription-credits"))


async def create_boost(
    api: ApiClient,
    *,
    listing_id: str,
    boost_type: str,
    duration_days: int,
    payment_method: str,
    auto_renew: bool = False,
) -> Boost | RedirectInstruction:
    """Buy a boost.

    Returns:
        The created Boost, or a RedirectInstruction when the backend hands
        the payment off to an external provider.
    """
    data = await api.post(
        "/boosts",
        json={
            "listingId": listing_id,
            "type": boost_type,
            "durationDays": duration_days,
            "paymentMethod": payment_method,
            "autoRenew": auto_renew,
        },
    )
    if isinstance(data, dict) and data.get("redirectUrl"):
        return parse(RedirectInstruction, data)
    return parse(Boost, data)


async def get_my_boosts(api: ApiClient) -> list[Boost]:
    return parse_list(Boost, await api.get("/boosts/my"))
