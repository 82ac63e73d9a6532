"""Promotion purchase workflow.

An explicit finite state machine::

    Configuring -> PriceCalculated -> ChannelSelected -> Submitting
        Submitting -> Confirmed          (credit / wallet purchase accepted)
        Submitting -> RedirectPending    (external provider order created)
        Submitting -> Failed -> ChannelSelected | PriceCalculated

Every transition goes through ``_transition`` and is checked against
``ALLOWED_TRANSITIONS``. Errors never escape ``calculate_price`` or
``submit``: they are recorded on the workflow and in the returned outcome.
"""

from __future__ import annotations

from decimal import Decimal

import logfire

from promo.api import boosts as boosts_api
from promo.boosts.catalog import PricingCatalog
from promo.boosts.channels import PaymentChannelSelector
from promo.boosts.gateway import ExternalGatewayAdapter
from promo.boosts.ledgers import BoostLedger, CreditLedger, WalletAccount
from promo.boosts.models import DEFAULT_DURATION_DAYS, PaymentService, RedirectInstruction
from promo.boosts.types import (
    Channel,
    CreditChannel,
    Customer,
    ExternalChannel,
    PurchaseIntent,
    SubmitOutcome,
    WalletChannel,
    WorkflowState,
)
from promo.common.errors import (
    ApiError,
    CreditExhausted,
    InsufficientFunds,
    PromoError,
    ValidationError,
    WorkflowStateError,
)
from promo.common.http import ApiClient

S = WorkflowState

ALLOWED_TRANSITIONS: dict[WorkflowState, frozenset[WorkflowState]] = {
    S.CONFIGURING: frozenset({S.CONFIGURING, S.PRICE_CALCULATED}),
    S.PRICE_CALCULATED: frozenset(
        {S.CONFIGURING, S.PRICE_CALCULATED, S.CHANNEL_SELECTED}
    ),
    S.CHANNEL_SELECTED: frozenset(
        {S.CONFIGURING, S.PRICE_CALCULATED, S.CHANNEL_SELECTED, S.SUBMITTING}
    ),
    S.SUBMITTING: frozenset({S.CONFIRMED, S.REDIRECT_PENDING, S.FAILED}),
    S.FAILED: frozenset({S.PRICE_CALCULATED, S.CHANNEL_SELECTED}),
    S.CONFIRMED: frozenset(),
    S.REDIRECT_PENDING: frozenset(),
}

EDITABLE_STATES = frozenset({S.CONFIGURING, S.PRICE_CALCULATED, S.CHANNEL_SELECTED})


def classify_purchase_error(error: PromoError, channel: Channel | None) -> PromoError:
    """Sharpen a generic rejection using the channel that was charged.

    The backend does not always send a machine-readable code, so a credit
    purchase rejected for credits is CreditExhausted and a wallet purchase
    rejected for balance is InsufficientFunds.
    """
    if not isinstance(error, (ValidationError, ApiError)):
        return error

    text = error.message.lower()
    kwargs = {"status_code": error.status_code, "code": error.code, "errors": error.errors}

    if isinstance(channel, CreditChannel) and "credit" in text:
        return CreditExhausted(error.message, **kwargs)
    if isinstance(channel, WalletChannel) and ("insufficient" in text or "balance" in text):
        return InsufficientFunds(error.message, **kwargs)
    return error


class PromotionWorkflow:
    """Configure, price, fund and submit one boost purchase.

    Usage:
        workflow = service.start(listing_id)
        workflow.choose_type("featured")
        workflow.choose_duration(7)
        await workflow.calculate_price()     # pre-selects a free credit if any
        workflow.select_channel(WalletChannel())
        outcome = await workflow.submit()
        if outcome and outcome.redirect_url:
            ...  # send the browser there

    Changing the type or duration throws the price away; submit is only
    possible with a price computed for the current selection.
    """

    def __init__(
        self,
        *,
        api: ApiClient,
        catalog: PricingCatalog,
        credits: CreditLedger,
        wallet: WalletAccount,
        boosts: BoostLedger,
        gateway: ExternalGatewayAdapter,
        selector: PaymentChannelSelector | None = None,
        customer: Customer | None = None,
        listing_id: str | None = None,
        boost_type: str | None = None,
        duration_days: int | None = DEFAULT_DURATION_DAYS,
        auto_renew: bool = False,
    ) -> None:
        self.api = api
        self.catalog = catalog
        self.credits = credits
        self.wallet = wallet
        self.boosts = boosts
        self.gateway = gateway
        self.selector = selector or PaymentChannelSelector()
        self.customer = customer
        self.auto_renew = auto_renew

        self.state = S.CONFIGURING
        self.intent = PurchaseIntent(
            listing_id=listing_id, type=boost_type, duration_days=duration_days
        )
        self.channels: list[Channel] = []
        self.error: PromoError | None = None
        self.outcome: SubmitOutcome | None = None
        self.history: list[tuple[WorkflowState, WorkflowState]] = []

        # Bumped on every selection change; quotes for older revisions are dropped
        self._revision = 0
        # Quotes in flight; overlapping quotes each hold one
        self._pricing = 0

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        """A quote or a submission is in flight."""
        return self._pricing > 0 or self.state is S.SUBMITTING

    @property
    def can_submit(self) -> bool:
        return (
            self.state is S.CHANNEL_SELECTED
            and self.intent.is_priced
            and self.intent.listing_id is not None
            and self._pricing == 0
        )

    @property
    def message(self) -> str | None:
        return self.error.user_message if self.error else None

    # -------------------------------------------------------------------------
    # Configuring
    # -------------------------------------------------------------------------

    def choose_listing(self, listing_id: str) -> None:
        """Pick the listing to promote. The price does not depend on it."""
        self._ensure_editable()
        if listing_id != self.intent.listing_id:
            self.intent = PurchaseIntent(
                listing_id=listing_id,
                type=self.intent.type,
                duration_days=self.intent.duration_days,
                calculated_price=self.intent.calculated_price,
                channel=self.intent.channel,
            )
            self.error = None

    def choose_type(self, boost_type: str) -> None:
        self._reconfigure(type=boost_type)

    def choose_duration(self, duration_days: int) -> None:
        self._reconfigure(duration_days=duration_days)

    def cancel(self) -> None:
        """Abandon the purchase. No request is made, nothing is kept."""
        if not self._editable:
            raise WorkflowStateError(f"Cannot cancel a purchase in state {self.state}.")
        self.intent = PurchaseIntent(duration_days=DEFAULT_DURATION_DAYS)
        self.channels = []
        self.error = None
        self._revision += 1
        if self.state is not S.CONFIGURING:
            self._transition(S.CONFIGURING, reason="cancelled")
        logfire.info("boost_purchase_cancelled")

    def _reconfigure(self, **changes: object) -> None:
        self._ensure_editable()
        if all(getattr(self.intent, key) == value for key, value in changes.items()):
            return

        self.intent = self.intent.reconfigure(**changes)
        self.channels = []
        self.error = None
        self._revision += 1
        if self.state is not S.CONFIGURING:
            self._transition(S.CONFIGURING, reason="selection_changed")

    # -------------------------------------------------------------------------
    # Pricing & channels
    # -------------------------------------------------------------------------

    async def calculate_price(self) -> Decimal | None:
        """Quote the current type and duration, then list the legal channels.

        Returns:
            The price, or None when the quote failed (see ``error``) or the
            selection changed while it was in flight.
        """
        self._ensure_editable()
        intent = self.intent
        if not intent.type or not intent.duration_days:
            self.error = ValidationError("Select a boost type and duration.")
            return None

        revision = self._revision
        self._pricing += 1
        try:
            price = await self.catalog.calculate_price(intent.type, intent.duration_days)
            credits = await self.credits.get()
            providers = await self._providers()
        except PromoError as e:
            if revision == self._revision:
                self.error = e
            logfire.warning(
                "boost_price_failed",
                boost_type=intent.type,
                duration_days=intent.duration_days,
                error_type=type(e).__name__,
                error=e.message,
            )
            return None
        finally:
            self._pricing -= 1

        if revision != self._revision:
            logfire.info(
                "stale_price_discarded",
                boost_type=intent.type,
                duration_days=intent.duration_days,
            )
            return None

        self.intent = self.intent.with_price(price)
        self.channels = self.selector.available_channels(self.intent, credits, providers)
        self.error = None
        self._transition(S.PRICE_CALCULATED, reason="price_calculated")

        default = self.selector.default_channel(self.channels)
        if default is not None:
            self._select(default)
        return price

    def select_channel(self, channel: Channel) -> None:
        """Pick how to pay.

        Raises:
            WorkflowStateError: No price for the current selection yet.
            ValidationError: Channel is not one of ``channels``.
        """
        if self.state not in (S.PRICE_CALCULATED, S.CHANNEL_SELECTED):
            raise WorkflowStateError("Calculate the price before choosing how to pay.")
        self._select(self.selector.require_channel(channel, self.channels))

    def _select(self, channel: Channel) -> None:
        self.intent = self.intent.with_channel(channel)
        self.error = None
        self._transition(S.CHANNEL_SELECTED, reason=channel.kind.value)

    async def _providers(self) -> list[PaymentService]:
        # Wallet and credit purchases still work when the aggregator is down
        try:
            return await self.gateway.list_providers()
        except PromoError as e:
            logfire.warning(
                "payment_services_unavailable",
                error_type=type(e).__name__,
                error=e.message,
            )
            return []

    # -------------------------------------------------------------------------
    # Submitting
    # -------------------------------------------------------------------------

    async def submit(self) -> SubmitOutcome | None:
        """Send the purchase.

        Returns:
            None if a submission is already in flight (the call is a no-op),
            otherwise the outcome. A failed outcome leaves the workflow ready
            for another attempt with the same type and duration.

        Raises:
            WorkflowStateError: The purchase was already submitted.
        """
        if self.state is S.SUBMITTING:
            logfire.info("submit_suppressed", listing_id=self.intent.listing_id)
            return None
        if self.state.is_terminal:
            raise WorkflowStateError("This purchase has already been submitted.")

        if (error := self._precondition_error()) is not None:
            self.error = error
            return SubmitOutcome(status="failed", error=error)

        intent = self.intent
        self._transition(S.SUBMITTING, reason=intent.channel.kind.value)
        try:
            if isinstance(intent.channel, ExternalChannel):
                outcome = await self._submit_external(intent)
            else:
                outcome = await self._submit_direct(intent)
        except PromoError as e:
            outcome = await self._fail(intent, e)
        except Exception as e:
            if self.state is not S.SUBMITTING:
                raise
            logfire.exception(
                "boost_purchase_crashed",
                listing_id=intent.listing_id,
                error_type=type(e).__name__,
            )
            error = ApiError()
            error.__cause__ = e
            outcome = await self._fail(intent, error)

        self.outcome = outcome
        return outcome

    def _precondition_error(self) -> ValidationError | None:
        if not self.intent.listing_id:
            return ValidationError("Select a listing to boost.")
        if self.state is S.CONFIGURING or not self.intent.is_priced or self._pricing:
            return ValidationError("Calculate the price before submitting.")
        if self.state is S.PRICE_CALCULATED or self.intent.channel is None:
            return ValidationError("Select a payment method.")
        if isinstance(self.intent.channel, ExternalChannel) and self.customer is None:
            return ValidationError("Sign in to pay with mobile money.")
        return None

    async def _submit_direct(self, intent: PurchaseIntent) -> SubmitOutcome:
        channel = intent.channel
        result = await boosts_api.create_boost(
            self.api,
            listing_id=intent.listing_id,
            boost_type=intent.type,
            duration_days=intent.duration_days,
            payment_method=channel.payment_method,
            auto_renew=self.auto_renew,
        )

        if isinstance(result, RedirectInstruction):
            self._transition(S.REDIRECT_PENDING, reason="backend_redirect")
            return SubmitOutcome(status="redirect", redirect_url=result.redirect_url)

        # Ledgers are refetched, never adjusted locally
        if isinstance(channel, CreditChannel):
            await self.credits.invalidate()
        else:
            await self.wallet.invalidate()
        await self.boosts.invalidate()

        self._transition(S.CONFIRMED, reason="boost_created")
        logfire.info(
            "boost_purchased",
            boost_id=result.id,
            listing_id=intent.listing_id,
            boost_type=intent.type,
            duration_days=intent.duration_days,
            channel=channel.kind.value,
            amount_due=str(intent.amount_due),
        )
        return SubmitOutcome(status="confirmed", boost=result)

    async def _submit_external(self, intent: PurchaseIntent) -> SubmitOutcome:
        order = await self.gateway.create_order(intent, self.customer)
        self._transition(S.REDIRECT_PENDING, reason="gateway_order_created")
        return SubmitOutcome(
            status="redirect",
            redirect_url=order.url,
            transaction_id=order.transaction_id,
        )

    async def _fail(self, intent: PurchaseIntent, error: PromoError) -> SubmitOutcome:
        error = classify_purchase_error(error, intent.channel)
        self._transition(S.FAILED, reason=type(error).__name__)
        self.error = error
        logfire.warning(
            "boost_purchase_failed",
            listing_id=intent.listing_id,
            boost_type=intent.type,
            channel=intent.channel.kind.value,
            error_type=type(error).__name__,
            error=error.message,
        )

        if isinstance(error, CreditExhausted):
            await self._refresh_channels_after_credit_loss()
            self._transition(S.PRICE_CALCULATED, reason="credit_exhausted")
        else:
            self._transition(S.CHANNEL_SELECTED, reason="retry")

        return SubmitOutcome(status="failed", error=error)

    async def _refresh_channels_after_credit_loss(self) -> None:
        await self.credits.invalidate()
        self.intent = self.intent.with_channel(None)
        try:
            credits = await self.credits.get()
        except PromoError as e:
            logfire.warning("credits_refresh_failed", error=e.message)
            self.channels = [c for c in self.channels if not isinstance(c, CreditChannel)]
            return
        self.channels = self.selector.available_channels(
            self.intent, credits, await self._providers()
        )

    # -------------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------------

    @property
    def _editable(self) -> bool:
        return self.state in EDITABLE_STATES

    def _ensure_editable(self) -> None:
        if not self._editable:
            raise WorkflowStateError(
                f"The purchase can no longer be changed (state: {self.state})."
            )

    def _transition(self, to_state: WorkflowState, *, reason: str = "") -> None:
        current = self.state
        if to_state not in ALLOWED_TRANSITIONS[current]:
            raise WorkflowStateError(f"invalid_workflow_transition {current}->{to_state}")
        self.history.append((current, to_state))
        self.state = to_state
        logfire.debug(
            "workflow_transition",
            from_state=current.value,
            to_state=to_state.value,
            reason=reason,
        )
