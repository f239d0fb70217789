"""
Tool argument schemas.

WHAT: Strict input records for the three negotiation tools
WHY: Model-supplied arguments are validated before any side effect runs
HOW: Pydantic v2 models; their JSON schema is advertised to the runtime
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SendMessageArgs(BaseModel):
    """Arguments for send_message."""

    model_config = ConfigDict(extra="forbid")

    body: str = Field(min_length=1, description="The body of the email to send to the vendor.")

    @field_validator("body")
    @classmethod
    def body_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("body must not be blank")
        return v


class RecordStateArgs(BaseModel):
    """Arguments for record_state."""

    model_config = ConfigDict(extra="forbid")

    price: float = Field(ge=0.0, description="Current best total price offered by the vendor.")
    description: str = Field(description="Short description of the offer behind this price.")


class FinalOfferArgs(BaseModel):
    """One final offer inside finish_negotiation."""

    model_config = ConfigDict(extra="forbid")

    description: str = Field(description="What the vendor offers, including key terms.")
    price: float = Field(ge=0.0, description="Total price of the offer.")
    pros: list[str] = Field(default_factory=list, max_length=3, description="Up to 3 short advantages.")
    cons: list[str] = Field(default_factory=list, max_length=3, description="Up to 3 short drawbacks.")


class FinishNegotiationArgs(BaseModel):
    """Arguments for finish_negotiation."""

    model_config = ConfigDict(extra="forbid")

    offers: list[FinalOfferArgs] = Field(
        min_length=1,
        description="All final offers from the vendor. Never accept an offer yourself."
    )
