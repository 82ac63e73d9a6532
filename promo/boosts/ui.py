"""Text helpers for showing boosts, tiers and payment channels."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from promo.boosts.models import Boost, BoostPricingTier, SubscriptionCredit, Wallet
from promo.boosts.types import Channel, CreditChannel, ExternalChannel


def format_price(amount: Decimal | int, currency: str = "ETB") -> str:
    """Whole currency units with thousands separators, e.g. ``ETB 1,500``."""
    whole = Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{currency} {whole:,}"


def format_days(days: int) -> str:
    return "1 day" if days == 1 else f"{days} days"


def format_distance(moment: datetime, now: datetime) -> str:
    """Relative time such as ``in 3 days`` or ``2 hours ago``."""
    seconds = int((moment - now).total_seconds())
    future = seconds >= 0
    seconds = abs(seconds)

    if seconds < 60:
        text = "less than a minute"
    elif seconds < 3600:
        minutes = seconds // 60
        text = "1 minute" if minutes == 1 else f"{minutes} minutes"
    elif seconds < 86400:
        hours = seconds // 3600
        text = "1 hour" if hours == 1 else f"{hours} hours"
    else:
        text = format_days(seconds // 86400)

    return f"in {text}" if future else f"{text} ago"


def tier_line(tier: BoostPricingTier, currency: str = "ETB") -> str:
    name = tier.name or tier.type
    return (
        f"{name} ({tier.type}): {format_price(tier.price_per_day, currency)}/day, "
        f"{tier.min_days}-{tier.max_days} days"
    )


def channel_label(
    channel: Channel,
    *,
    credits: SubscriptionCredit | None = None,
    wallet: Wallet | None = None,
) -> str:
    """Label of a channel, with the remaining credits or balance when known."""
    if isinstance(channel, CreditChannel):
        if credits is None:
            return "Subscription credit"
        return f"Subscription credit ({credits.remaining_credits} left)"
    if isinstance(channel, ExternalChannel):
        return channel.name or channel.provider_id
    if wallet is None:
        return "Wallet"
    return f"Wallet ({format_price(wallet.balance, wallet.currency)})"


def boost_line(boost: Boost, now: datetime) -> str:
    """One line of the boost dashboard.

    Example:
        ``featured · Toyota Vitz 2015 · Expires in 3 days``
    """
    verb = "Expires" if boost.is_active(now) else "Expired"
    distance = format_distance(boost.expires_at, now)
    return f"{boost.type} · {boost.title} · {verb} {distance}"
