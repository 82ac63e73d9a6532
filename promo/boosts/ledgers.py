"""Read-through ledgers for server-owned state.

Credits, wallet and boosts belong to the backend and are shared across the
user's devices. The client only ever reads them through a cache and
invalidates that cache after a successful purchase; it never writes a
locally computed value.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Generic, Protocol, TypeVar
from uuid import uuid4

import logfire
from aiocache import Cache

from promo.api import boosts as boosts_api
from promo.api import payments as payments_api
from promo.boosts.models import Boost, SubscriptionCredit, Wallet
from promo.boosts.types import BoostType
from promo.common.errors import ValidationError
from promo.common.http import ApiClient

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class Ledger(Protocol[T_co]):
    """Read-through view of server-owned state."""

    async def get(self) -> T_co: ...

    async def invalidate(self) -> None: ...


class ReadThroughLedger(Generic[T]):
    """Caches the result of ``loader`` until the TTL passes or ``invalidate``.

    Concurrent readers of an empty cache share a single fetch.
    """

    def __init__(
        self,
        name: str,
        loader: Callable[[], Awaitable[T]],
        *,
        ttl: int | None = None,
    ) -> None:
        self.name = name
        self.ttl = ttl or None
        self._loader = loader
        self._lock = asyncio.Lock()
        # Unique namespace keeps ledgers of different users apart
        self._cache = Cache(Cache.MEMORY, namespace=f"{name}:{uuid4().hex}:")

    async def get(self) -> T:
        async with self._lock:
            cached = await self._cache.get(self.name)
            if cached is not None:
                return cached

            value = await self._loader()
            await self._cache.set(self.name, value, ttl=self.ttl)
            logfire.debug("ledger_loaded", ledger=self.name, ttl=self.ttl)
            return value

    async def invalidate(self) -> None:
        # An in-flight load finishes before the entry is dropped
        async with self._lock:
            await self._cache.delete(self.name)
        logfire.debug("ledger_invalidated", ledger=self.name)


def credit_covers(credits: SubscriptionCredit, boost_type: str) -> bool:
    """Whether a subscription credit may pay for ``boost_type``.

    Credits only ever fund the featured promotion; this is a business rule,
    not a generic quota.
    """
    return boost_type == BoostType.FEATURED and credits.remaining_credits > 0


class CreditLedger(ReadThroughLedger[SubscriptionCredit]):
    """Subscription credits usable for free featured boosts."""

    def __init__(self, api: ApiClient, *, ttl: int | None = None) -> None:
        super().__init__(
            "subscription_credits",
            lambda: boosts_api.get_subscription_credits(api),
            ttl=ttl,
        )

    async def can_use_credit_for(self, boost_type: str) -> bool:
        return credit_covers(await self.get(), boost_type)


class WalletAccount(ReadThroughLedger[Wallet]):
    """Spendable wallet balance. Funded elsewhere (top-up flow)."""

    def __init__(self, api: ApiClient, *, ttl: int | None = None) -> None:
        super().__init__("wallet", lambda: payments_api.get_wallet(api), ttl=ttl)

    async def balance(self) -> Decimal:
        return (await self.get()).balance


@dataclass(frozen=True, slots=True)
class BoostPartition:
    active: list[Boost]
    expired: list[Boost]


def partition_boosts(boosts: list[Boost], now: datetime) -> BoostPartition:
    """Split boosts into active (``now < expires_at``) and expired."""
    active: list[Boost] = []
    expired: list[Boost] = []
    for boost in boosts:
        (active if boost.is_active(now) else expired).append(boost)
    return BoostPartition(active=active, expired=expired)


class BoostLedger(ReadThroughLedger[list[Boost]]):
    """The user's purchased boosts.

    Only the fetched list is cached. The active/expired split depends on the
    clock and is recomputed on every ``partition`` call.
    """

    def __init__(
        self,
        api: ApiClient,
        *,
        ttl: int | None = None,
        clock: Clock = utc_now,
    ) -> None:
        super().__init__("my_boosts", lambda: boosts_api.get_my_boosts(api), ttl=ttl)
        self.clock = clock

    async def list_mine(self) -> list[Boost]:
        return await self.get()

    async def partition(self, now: datetime | None = None) -> BoostPartition:
        boosts = await self.get()
        return partition_boosts(boosts, now or self.clock())

    async def find(self, boost_id: str) -> Boost:
        for boost in await self.get():
            if boost.id == boost_id:
                return boost
        raise ValidationError(f"Boost {boost_id} was not found.")
