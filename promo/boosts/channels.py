"""Payment channel selection.

Given a priced intent and the current snapshots, decide which channels are
legal. The check order mirrors what the user sees:
1. Subscription credit (featured boosts only, while credits remain)
2. Wallet (always offered, sufficiency is the backend's call)
3. One entry per external provider
"""

from __future__ import annotations

from collections.abc import Sequence

from promo.boosts.ledgers import credit_covers
from promo.boosts.models import PaymentService, SubscriptionCredit
from promo.boosts.types import (
    Channel,
    CreditChannel,
    ExternalChannel,
    PurchaseIntent,
    WalletChannel,
)
from promo.common.errors import ValidationError


class PaymentChannelSelector:
    """Enumerates legal channels and validates the user's pick."""

    def available_channels(
        self,
        intent: PurchaseIntent,
        credits: SubscriptionCredit,
        providers: Sequence[PaymentService] = (),
    ) -> list[Channel]:
        channels: list[Channel] = []
        if intent.type and credit_covers(credits, intent.type):
            channels.append(CreditChannel())
        channels.append(WalletChannel())
        channels.extend(ExternalChannel(p.id, p.label) for p in providers)
        return channels

    def default_channel(self, channels: Sequence[Channel]) -> Channel | None:
        """Pre-select a free credit when one applies, nothing otherwise.

        A UX default only: the user may still pick wallet or external.
        """
        for channel in channels:
            if isinstance(channel, CreditChannel):
                return channel
        return None

    def require_channel(
        self, channel: Channel | None, channels: Sequence[Channel]
    ) -> Channel:
        """Return ``channel`` if it is one of ``channels``.

        Raises:
            ValidationError: No channel picked, or not a legal one.
        """
        if channel is None:
            raise ValidationError("Select a payment method.")
        if channel not in channels:
            if isinstance(channel, CreditChannel):
                raise ValidationError(
                    "Subscription credits can only pay for featured boosts "
                    "while credits remain."
                )
            raise ValidationError("This payment method is not available.")
        return channel
