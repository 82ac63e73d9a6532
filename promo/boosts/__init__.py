"""Listing promotion (boost) purchases.

Provides:
- Pricing catalog with per-type duration bounds
- Read-through ledgers for subscription credits, wallet and purchased boosts
- Payment channel selection (credit, wallet, external provider)
- External gateway adapter for mobile-money providers
- The purchase workflow state machine and the per-user service
"""

from promo.boosts.catalog import PricingCatalog
from promo.boosts.channels import PaymentChannelSelector
from promo.boosts.gateway import ExternalGatewayAdapter
from promo.boosts.ledgers import (
    BoostLedger,
    BoostPartition,
    CreditLedger,
    WalletAccount,
    partition_boosts,
)
from promo.boosts.models import (
    DEFAULT_DURATION_DAYS,
    DURATION_PRESETS,
    Boost,
    BoostPricingTier,
    PaymentRecord,
    PaymentService,
    SubscriptionCredit,
    Wallet,
)
from promo.boosts.service import BoostService, Dashboard
from promo.boosts.types import (
    BoostType,
    Channel,
    CreditChannel,
    Customer,
    ExternalChannel,
    PurchaseIntent,
    SubmitOutcome,
    WalletChannel,
    WorkflowState,
)
from promo.boosts.workflow import PromotionWorkflow

__all__ = [
    # Catalog
    "PricingCatalog",
    "BoostPricingTier",
    "BoostType",
    "DURATION_PRESETS",
    "DEFAULT_DURATION_DAYS",
    # Ledgers
    "CreditLedger",
    "WalletAccount",
    "BoostLedger",
    "BoostPartition",
    "partition_boosts",
    "SubscriptionCredit",
    "Wallet",
    "Boost",
    # Channels & gateway
    "PaymentChannelSelector",
    "ExternalGatewayAdapter",
    "Channel",
    "CreditChannel",
    "WalletChannel",
    "ExternalChannel",
    "PaymentService",
    "PaymentRecord",
    # Workflow
    "PromotionWorkflow",
    "PurchaseIntent",
    "SubmitOutcome",
    "WorkflowState",
    "Customer",
    # Service
    "BoostService",
    "Dashboard",
]
