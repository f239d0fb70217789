"""
Negotiation domain models.

WHAT: Read models returned by the state store plus session inputs
WHY: Keep ORM rows inside the store; everything else passes typed values
HOW: Pydantic v2 models built from ORM attributes
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class VendorProfile(BaseModel):
    """Vendor identity and behaviour profile."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    behaviour: str | None = None


class ProductContext(BaseModel):
    """What the principal wants to buy, handed to every vendor session."""

    name: str = "Product"
    quantity: int = Field(default=1, ge=1)
    starting_price: float | None = Field(default=None, gt=0.0)
    target_reduction: float | None = Field(
        default=None,
        ge=0.0,
        lt=100.0,
        description="Desired reduction from the starting price, in percent"
    )
    user_request: str | None = None

    @property
    def target_price(self) -> float | None:
        """Starting price reduced by the target percentage, if both are known."""
        if self.starting_price is None or self.target_reduction is None:
            return None
        return round(self.starting_price * (1 - self.target_reduction / 100), 2)


class GroupRecord(BaseModel):
    """Negotiation group as stored."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    product_name: str | None = None
    quantity: int = 1
    status: Literal["running", "finished", "accepted"]
    accepted_offer_id: int | None = None
    created_at: datetime | None = None


class NegotiationRecord(BaseModel):
    """Negotiation as stored."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    negotiation_group_id: int | None = None
    vendor_id: int | None = None
    conversation_id: str | None = None
    created_at: datetime | None = None


class MessageRecord(BaseModel):
    """Conversation message as stored."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: str
    type: Literal["assistant", "user"]
    message: str
    created_at: datetime | None = None


class PriceSnapshot(BaseModel):
    """Price state recorded during a negotiation."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    negotiation_id: int
    price: float
    description: str = ""
    created_at: datetime | None = None


class OfferRecord(BaseModel):
    """Final offer as stored."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    negotiation_id: int
    price: float
    description: str = ""
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    created_at: datetime | None = None


class LeverageQuote(BaseModel):
    """The only data allowed to cross from one negotiation to a sibling."""

    price: float
    description: str = ""
