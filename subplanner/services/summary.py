from collections import defaultdict
from typing import Iterable

from subplanner.schemas.subscription import (
    BillingCycle,
    CategoryCost,
    Subscription,
    SubscriptionSummary,
)

UNCATEGORIZED = "uncategorized"


def monthly_equivalent(price: float, billing_cycle: BillingCycle) -> float:
    """Convert price to monthly equivalent based on billing cycle."""
    if billing_cycle == BillingCycle.YEARLY:
        return price / 12
    return price


def yearly_equivalent(price: float, billing_cycle: BillingCycle) -> float:
    """Convert price to yearly equivalent based on billing cycle."""
    if billing_cycle == BillingCycle.MONTHLY:
        return price * 12
    return price


def calculate_summary(subscriptions: Iterable[Subscription]) -> SubscriptionSummary:
    """Totals over active subscriptions; paused ones only count towards subscription_count."""
    subscriptions = list(subscriptions)
    active = [s for s in subscriptions if s.is_active]

    monthly_total = sum(monthly_equivalent(s.price, s.billing_cycle) for s in active)
    yearly_total = sum(yearly_equivalent(s.price, s.billing_cycle) for s in active)

    by_category: dict[str, dict[str, float]] = defaultdict(lambda: {"monthly_cost": 0.0, "count": 0})
    for sub in active:
        bucket = by_category[sub.category or UNCATEGORIZED]
        bucket["monthly_cost"] += monthly_equivalent(sub.price, sub.billing_cycle)
        bucket["count"] += 1

    categories = [
        CategoryCost(
            category=category,
            monthly_cost=round(data["monthly_cost"], 2),
            subscription_count=int(data["count"]),
        )
        for category, data in by_category.items()
    ]
    categories.sort(key=lambda c: (-c.monthly_cost, c.category))

    return SubscriptionSummary(
        monthly_total=round(monthly_total, 2),
        yearly_total=round(yearly_total, 2),
        subscription_count=len(subscriptions),
        active_count=len(active),
        categories=categories,
    )
