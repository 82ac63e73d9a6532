"""Boost service: the per-user entry point for promotions.

This owns the API client, the pricing catalog, the three ledgers and the
gateway adapter, and hands out purchase workflows that share them.
"""

from __future__ import annotations

from dataclasses import dataclass

import logfire

from promo.boosts.catalog import PricingCatalog
from promo.boosts.channels import PaymentChannelSelector
from promo.boosts.gateway import ExternalGatewayAdapter
from promo.boosts.ledgers import (
    BoostLedger,
    BoostPartition,
    Clock,
    CreditLedger,
    WalletAccount,
    utc_now,
)
from promo.boosts.models import (
    BoostPricingTier,
    PaymentRecord,
    SubscriptionCredit,
    Wallet,
)
from promo.boosts.types import Customer
from promo.boosts.workflow import PromotionWorkflow
from promo.common.http import ApiClient
from promo.common.retry import RetryConfig
from promo.config import Settings, settings as default_settings


@dataclass(frozen=True, slots=True)
class Dashboard:
    """Everything the promotions page shows before a purchase starts."""

    tiers: list[BoostPricingTier]
    credits: SubscriptionCredit
    wallet: Wallet
    boosts: BoostPartition


class BoostService:
    """Service for browsing and buying listing boosts.

    Usage:
        async with BoostService.from_settings(customer=customer) as service:
            dashboard = await service.dashboard()

            workflow = service.start("listing-1", boost_type="featured")
            await workflow.calculate_price()
            outcome = await workflow.submit()

            # Later, back from the external provider
            record = await service.confirm_return(outcome.transaction_id)
    """

    def __init__(
        self,
        api: ApiClient,
        *,
        config: Settings | None = None,
        customer: Customer | None = None,
        clock: Clock = utc_now,
    ) -> None:
        config = config or default_settings
        self.api = api
        self.config = config
        self.customer = customer
        self.selector = PaymentChannelSelector()
        self.catalog = PricingCatalog(api, ttl=config.pricing_ttl)
        self.credits = CreditLedger(api, ttl=config.credits_ttl)
        self.wallet = WalletAccount(api, ttl=config.wallet_ttl)
        self.boosts = BoostLedger(api, ttl=config.boosts_ttl, clock=clock)
        self.gateway = ExternalGatewayAdapter(
            api,
            services_url=config.payment_services_url,
            ttl=config.payment_services_ttl,
        )

    @classmethod
    def from_settings(
        cls,
        config: Settings | None = None,
        *,
        customer: Customer | None = None,
        token: str | None = None,
    ) -> BoostService:
        """Build a service with its own ApiClient configured from settings."""
        config = config or default_settings
        api = ApiClient(
            config.api_base_url,
            token=token or config.api_token,
            timeout=config.request_timeout,
            retry=RetryConfig(max_attempts=config.retry_attempts),
        )
        return cls(api, config=config, customer=customer)

    async def __aenter__(self) -> BoostService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.api.aclose()

    def start(
        self,
        listing_id: str | None = None,
        *,
        boost_type: str | None = None,
        duration_days: int | None = None,
    ) -> PromotionWorkflow:
        """Open a purchase workflow in the configuring state."""
        kwargs = {}
        if duration_days is not None:
            kwargs["duration_days"] = duration_days
        return PromotionWorkflow(
            api=self.api,
            catalog=self.catalog,
            credits=self.credits,
            wallet=self.wallet,
            boosts=self.boosts,
            gateway=self.gateway,
            selector=self.selector,
            customer=self.customer,
            listing_id=listing_id,
            boost_type=boost_type,
            auto_renew=self.config.auto_renew,
            **kwargs,
        )

    async def reboost(self, boost_id: str) -> PromotionWorkflow:
        """Start a new purchase for the listing of an earlier boost.

        The earlier record is left as it is; renewing creates a new boost.

        Raises:
            ValidationError: No boost with that id.
        """
        previous = await self.boosts.find(boost_id)
        logfire.info(
            "reboost_started",
            boost_id=previous.id,
            listing_id=previous.listing_id,
            boost_type=previous.type,
        )
        return self.start(previous.listing_id, boost_type=previous.type)

    async def dashboard(self) -> Dashboard:
        return Dashboard(
            tiers=await self.catalog.list_tiers(),
            credits=await self.credits.get(),
            wallet=await self.wallet.get(),
            boosts=await self.boosts.partition(),
        )

    async def confirm_return(self, transaction_id: str) -> PaymentRecord:
        """Check an external payment after the user comes back from the provider.

        The boost list and wallet are refetched on next read whatever the
        status, since the provider may have settled in the meantime.
        """
        record = await self.gateway.verify(transaction_id)
        await self.boosts.invalidate()
        await self.wallet.invalidate()
        return record
