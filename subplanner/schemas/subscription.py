from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class ImportMode(str, Enum):
    REPLACE = "replace"
    APPEND = "append"


class Subscription(BaseModel):
    """A tracked recurring charge, as held by the store.

    Serialized with camelCase keys (``billingCycle``, ``nextBillingDate``,
    ``isActive``) in the persisted collection.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0, allow_inf_nan=False)
    billing_cycle: BillingCycle
    next_billing_date: date
    category: Optional[str] = None
    color: Optional[str] = None
    order: Optional[int] = None
    is_active: bool = True

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class SubscriptionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0, allow_inf_nan=False)
    billing_cycle: BillingCycle
    next_billing_date: date
    category: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=50)


class SubscriptionUpdate(SubscriptionCreate):
    # Display order and pause state are kept when omitted
    order: Optional[int] = None
    is_active: Optional[bool] = None


class SubscriptionResponse(BaseModel):
    id: str
    name: str
    price: float
    billing_cycle: BillingCycle
    next_billing_date: date
    category: Optional[str] = None
    color: Optional[str] = None
    order: Optional[int] = None
    is_active: bool = True

    class Config:
        from_attributes = True


class ReorderRequest(BaseModel):
    ids: list[str]


class ImportRequest(BaseModel):
    content: str = Field(..., description="CSV text with an id,name,price,billingCycle,nextBillingDate header")
    mode: ImportMode = ImportMode.APPEND


class ImportResponse(BaseModel):
    mode: ImportMode
    imported_count: int
    total_count: int
    errors: list[str]


# Cost summary schemas
class CategoryCost(BaseModel):
    """Cost breakdown for a single category."""

    category: str  # Category name or "uncategorized"
    monthly_cost: float
    subscription_count: int


class SubscriptionSummary(BaseModel):
    """Aggregated cost of the active subscriptions."""

    monthly_total: float
    yearly_total: float
    subscription_count: int
    active_count: int
    categories: list[CategoryCost]
