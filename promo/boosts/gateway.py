"""External mobile-money gateway adapter.

Flow:
1. The user picks a provider listed by the aggregator
2. An order is created and the provider's checkout URL returned
3. The user is sent to that URL; confirmation happens out of band
4. Back in the app, ``verify`` reports the payment state and the boost list
   is refetched
"""

from __future__ import annotations

from uuid import uuid4

import logfire

from promo.api import payments as payments_api
from promo.boosts.ledgers import ReadThroughLedger
from promo.boosts.models import GatewayOrder, PaymentRecord, PaymentService
from promo.boosts.types import Customer, ExternalChannel, PurchaseIntent
from promo.common.errors import (
    GatewayError,
    NetworkError,
    PromoError,
    ValidationError,
)
from promo.common.http import ApiClient


class ExternalGatewayAdapter:
    """Creates provider orders and reports their payment status."""

    def __init__(
        self,
        api: ApiClient,
        *,
        services_url: str,
        ttl: int | None = None,
    ) -> None:
        self.api = api
        self._providers = ReadThroughLedger(
            "payment_services",
            lambda: payments_api.get_payment_services(api, services_url),
            ttl=ttl,
        )

    async def list_providers(self) -> list[PaymentService]:
        return await self._providers.get()

    async def create_order(
        self,
        intent: PurchaseIntent,
        customer: Customer,
        *,
        transaction_id: str | None = None,
    ) -> GatewayOrder:
        """Create a provider order for a priced intent with an external channel.

        Args:
            intent: Priced intent whose channel is an ExternalChannel.
            customer: Who pays; their phone number is required by providers.
            transaction_id: Reuse an existing id, otherwise a new UUID4.

        Returns:
            The order with the checkout URL to redirect the user to.

        Raises:
            ValidationError: Intent not ready, or customer has no phone.
            GatewayError: The provider did not accept the order.
            NetworkError: Transport failure.
        """
        channel = intent.channel
        if not isinstance(channel, ExternalChannel):
            raise ValidationError("Select a mobile money provider.")
        if intent.calculated_price is None or not intent.type:
            raise ValidationError("Calculate the price before paying.")
        phone = customer.gateway_phone
        if not phone:
            raise ValidationError("Add a phone number to your profile to pay with mobile money.")

        transaction_id = transaction_id or str(uuid4())

        try:
            url = await payments_api.create_order(
                self.api,
                title=f"Boost - {intent.type}",
                amount=intent.calculated_price,
                transaction_id=transaction_id,
                user_id=customer.user_id,
                phone_number=phone,
                payment_service_id=channel.provider_id,
            )
        except NetworkError:
            raise
        except PromoError as e:
            logfire.warning(
                "gateway_order_failed",
                provider=channel.provider_id,
                transaction_id=transaction_id,
                error=e.message,
            )
            raise GatewayError(
                e.message, status_code=e.status_code, code=e.code, errors=e.errors
            ) from e

        if not url:
            logfire.warning(
                "gateway_order_without_url",
                provider=channel.provider_id,
                transaction_id=transaction_id,
            )
            raise GatewayError()

        logfire.info(
            "gateway_order_created",
            provider=channel.provider_id,
            transaction_id=transaction_id,
            amount=str(intent.calculated_price),
            boost_type=intent.type,
            listing_id=intent.listing_id,
        )
        return GatewayOrder(url=url, transaction_id=transaction_id)

    async def verify(self, transaction_id: str) -> PaymentRecord:
        """Payment status of an order, for when the user returns."""
        record = await payments_api.verify_payment(self.api, transaction_id)
        logfire.info(
            "gateway_payment_verified",
            transaction_id=transaction_id,
            status=record.status,
        )
        return record
