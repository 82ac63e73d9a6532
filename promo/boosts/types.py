"""Types for boost purchases: channels, intents, workflow states and outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from promo.boosts.models import Boost
    from promo.common.errors import PromoError


class BoostType(StrEnum):
    """Promotion types known to the marketplace."""

    FEATURED = "featured"  # Only type a subscription credit can pay for
    TOP_SEARCH = "top_search"
    HOMEPAGE = "homepage"
    CATEGORY_TOP = "category_top"
    URGENT = "urgent"
    HIGHLIGHT = "highlight"


class ChannelKind(StrEnum):
    CREDIT = "credit"
    WALLET = "wallet"
    EXTERNAL = "external"


@dataclass(frozen=True, slots=True)
class CreditChannel:
    """Free subscription credit."""

    kind: Literal[ChannelKind.CREDIT] = ChannelKind.CREDIT

    @property
    def payment_method(self) -> str:
        return "subscription"


@dataclass(frozen=True, slots=True)
class WalletChannel:
    """Wallet balance, checked for sufficiency by the backend."""

    kind: Literal[ChannelKind.WALLET] = ChannelKind.WALLET

    @property
    def payment_method(self) -> str:
        return "wallet"


@dataclass(frozen=True, slots=True)
class ExternalChannel:
    """External mobile-money provider reached through a browser redirect."""

    provider_id: str
    name: str = field(default="", compare=False)
    kind: Literal[ChannelKind.EXTERNAL] = ChannelKind.EXTERNAL

    @property
    def payment_method(self) -> str:
        return self.provider_id


Channel = CreditChannel | WalletChannel | ExternalChannel


class WorkflowState(StrEnum):
    CONFIGURING = "configuring"
    PRICE_CALCULATED = "price_calculated"
    CHANNEL_SELECTED = "channel_selected"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    REDIRECT_PENDING = "redirect_pending"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkflowState.CONFIRMED, WorkflowState.REDIRECT_PENDING)


@dataclass(frozen=True, slots=True)
class PurchaseIntent:
    """What the user is configuring. Ephemeral, never persisted."""

    listing_id: str | None = None
    type: str | None = None
    duration_days: int | None = None
    calculated_price: Decimal | None = None
    channel: Channel | None = None

    @property
    def is_priced(self) -> bool:
        return self.calculated_price is not None

    @property
    def amount_due(self) -> Decimal | None:
        """What the user pays. Credit-funded purchases are free."""
        if isinstance(self.channel, CreditChannel):
            return Decimal("0")
        return self.calculated_price

    def reconfigure(self, **changes: object) -> PurchaseIntent:
        """Copy with new listing/type/duration; drops the price and channel."""
        return replace(self, calculated_price=None, channel=None, **changes)

    def with_price(self, price: Decimal) -> PurchaseIntent:
        return replace(self, calculated_price=price, channel=None)

    def with_channel(self, channel: Channel | None) -> PurchaseIntent:
        return replace(self, channel=channel)


@dataclass(frozen=True, slots=True)
class Customer:
    """The signed-in user, as far as external payments need to know."""

    user_id: str
    phone: str | None = None

    @property
    def gateway_phone(self) -> str | None:
        """Phone number in the form the gateway expects (no leading +)."""
        if not self.phone:
            return None
        return self.phone[1:] if self.phone.startswith("+") else self.phone


@dataclass(frozen=True, slots=True)
class SubmitOutcome:
    """Result of one submission attempt."""

    status: Literal["confirmed", "redirect", "failed"]
    boost: Boost | None = None
    redirect_url: str | None = None
    transaction_id: str | None = None
    error: PromoError | None = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"

    @property
    def message(self) -> str | None:
        return self.error.user_message if self.error else None
