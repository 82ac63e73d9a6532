"""API payload models for boosts, credits, wallet and payments.

The backend speaks camelCase; models accept both the wire names and the
Python names so tests and callers can build them either way.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

# Durations offered in the purchase dialog, clipped to tier bounds
DURATION_PRESETS: tuple[int, ...] = (1, 3, 7, 14, 30)
DEFAULT_DURATION_DAYS = 7


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class BoostPricingTier(ApiModel):
    """Pricing of one promotion type."""

    type: str
    name: str = ""
    description: str = ""
    price_per_day: Decimal
    multiplier: Decimal = Decimal("1")
    min_days: int = Field(ge=1)
    max_days: int

    @model_validator(mode="after")
    def _check_bounds(self) -> BoostPricingTier:
        if self.max_days < self.min_days:
            raise ValueError(
                f"max_days ({self.max_days}) < min_days ({self.min_days}) for {self.type}"
            )
        return self

    def accepts(self, duration_days: int) -> bool:
        return self.min_days <= duration_days <= self.max_days

    def estimate(self, duration_days: int) -> Decimal:
        """Display-only estimate. The backend quote is what gets charged."""
        return self.price_per_day * duration_days * self.multiplier

    def duration_options(self) -> list[int]:
        options = [d for d in DURATION_PRESETS if self.accepts(d)]
        return options or [self.min_days]


class SubscriptionCredit(ApiModel):
    """Snapshot of the user's rationed free boost credits."""

    has_active_subscription: bool = False
    plan_name: str | None = None
    can_use_subscription_credit: bool = False
    total_credits: int = Field(default=0, ge=0)
    used_credits: int = Field(default=0, ge=0)
    remaining_credits: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_totals(self) -> SubscriptionCredit:
        if self.used_credits + self.remaining_credits != self.total_credits:
            raise ValueError(
                f"used ({self.used_credits}) + remaining ({self.remaining_credits}) "
                f"!= total ({self.total_credits})"
            )
        return self


class Wallet(ApiModel):
    id: str | None = None
    balance: Decimal = Decimal("0")
    pending_balance: Decimal | None = None
    currency: str = "ETB"
    is_active: bool | None = None


class ListingRef(ApiModel):
    id: str
    title: str = ""
    thumbnail: str | None = None


class Boost(ApiModel):
    """A purchased promotion. Never mutated, renewals create new records."""

    id: str
    listing_id: str | None = None
    type: str
    created_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "startsAt", "created_at"),
    )
    expires_at: datetime = Field(
        validation_alias=AliasChoices("expiresAt", "endsAt", "expires_at"),
    )
    status: str | None = None
    listing: ListingRef | None = None
    used_subscription_credit: bool | None = None

    @field_validator("created_at", "expires_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="before")
    @classmethod
    def _fill_listing_id(cls, data: object) -> object:
        if isinstance(data, dict) and not (
            data.get("listingId") or data.get("listing_id")
        ):
            listing = data.get("listing")
            if isinstance(listing, dict) and listing.get("id"):
                return {**data, "listingId": listing["id"]}
        return data

    def is_active(self, now: datetime) -> bool:
        return now < self.expires_at

    @property
    def title(self) -> str:
        if self.listing and self.listing.title:
            return self.listing.title
        return self.listing_id or self.id


class PriceQuote(ApiModel):
    price: Decimal


class PaymentService(ApiModel):
    """An external mobile-money provider offered by the gateway."""

    id: str
    name: str | None = None
    type: str | None = None
    vendor_type: str | None = Field(
        default=None, validation_alias=AliasChoices("vendor_type", "vendorType")
    )
    icon_url: str | None = Field(
        default=None, validation_alias=AliasChoices("icon_url", "iconUrl")
    )

    @property
    def label(self) -> str:
        return self.name or self.vendor_type or "Payment Option"


class GatewayOrder(ApiModel):
    """An order created with the external provider."""

    url: str
    transaction_id: str


class RedirectInstruction(ApiModel):
    """Purchase answered with a redirect instead of a boost."""

    redirect_url: str


class PaymentRecord(ApiModel):
    transaction_id: str
    status: Literal["pending", "completed", "failed", "refunded"]
    amount: Decimal = Decimal("0")
    provider: str | None = None
    provider_ref: str | None = None
    completed_at: datetime | None = None

    @property
    def is_settled(self) -> bool:
        return self.status != "pending"
