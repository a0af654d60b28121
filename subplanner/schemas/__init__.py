from subplanner.schemas.subscription import (
    BillingCycle,
    CategoryCost,
    ImportMode,
    ImportRequest,
    ImportResponse,
    ReorderRequest,
    Subscription,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionSummary,
    SubscriptionUpdate,
)
from subplanner.schemas.template import Template

__all__ = [
    "BillingCycle",
    "CategoryCost",
    "ImportMode",
    "ImportRequest",
    "ImportResponse",
    "ReorderRequest",
    "Subscription",
    "SubscriptionCreate",
    "SubscriptionResponse",
    "SubscriptionSummary",
    "SubscriptionUpdate",
    "Template",
]
