from typing import Optional

from pydantic import BaseModel, Field

from subplanner.schemas.subscription import BillingCycle


class Template(BaseModel):
    """A known service used to pre-fill a new subscription."""

    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0, allow_inf_nan=False)  # 0 means a free tier
    cycle: BillingCycle
    category: Optional[str] = None
    icon: Optional[str] = None
