"""Pricing catalog for promotion types."""

from __future__ import annotations

from decimal import Decimal

import logfire

from promo.api import boosts as boosts_api
from promo.boosts.ledgers import ReadThroughLedger
from promo.boosts.models import BoostPricingTier
from promo.common.errors import ValidationError
from promo.common.http import ApiClient


class PricingCatalog:
    """Per-type pricing tiers and the authoritative price computation.

    Usage:
        catalog = PricingCatalog(api, ttl=settings.pricing_ttl)
        price = await catalog.calculate_price("featured", 7)

    Durations and types are checked against the tiers before the backend is
    asked for a quote, so an out-of-range request never leaves the client.
    """

    def __init__(self, api: ApiClient, *, ttl: int | None = None) -> None:
        self.api = api
        self._tiers = ReadThroughLedger(
            "pricing_catalog", lambda: boosts_api.get_pricing(api), ttl=ttl
        )

    async def list_tiers(self) -> list[BoostPricingTier]:
        return await self._tiers.get()

    async def get_tier(self, boost_type: str) -> BoostPricingTier:
        """Get the tier for a promotion type.

        Raises:
            ValidationError: If the type is not in the catalog.
        """
        for tier in await self.list_tiers():
            if tier.type == boost_type:
                return tier
        raise ValidationError(f"Unknown boost type: {boost_type}")

    async def validate(self, boost_type: str, duration_days: int) -> BoostPricingTier:
        """Check ``duration_days`` against the tier bounds of ``boost_type``."""
        tier = await self.get_tier(boost_type)
        if not tier.accepts(duration_days):
            raise ValidationError(
                f"Duration must be between {tier.min_days} and {tier.max_days} days "
                f"for {tier.name or tier.type}."
            )
        return tier

    async def calculate_price(self, boost_type: str, duration_days: int) -> Decimal:
        """Price of promoting a listing with ``boost_type`` for ``duration_days``.

        The backend may apply multipliers, discounts or caps, so its quote is
        authoritative; the local tier only gates the request.

        Raises:
            ValidationError: Unknown type, or duration outside the tier bounds.
        """
        await self.validate(boost_type, duration_days)
        price = await boosts_api.calculate_price(self.api, boost_type, duration_days)
        logfire.info(
            "boost_price_calculated",
            boost_type=boost_type,
            duration_days=duration_days,
            price=str(price),
        )
        return price

    async def invalidate(self) -> None:
        await self._tiers.invalidate()
