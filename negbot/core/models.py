"""
ORM models for negotiation persistence.

WHAT: SQLAlchemy models for vendors, groups, negotiations, messages, states, offers
WHY: Durable record shared by every concurrently running vendor session
HOW: Declarative models with constraints, foreign keys, and indexes
"""

from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Text, JSON,
    ForeignKey, CheckConstraint, Index, Enum as SQLEnum
)
from sqlalchemy.orm import relationship
import enum

from .database import Base


class GroupStatus(str, enum.Enum):
    """Negotiation group status values."""
    RUNNING = "running"
    FINISHED = "finished"
    ACCEPTED = "accepted"


class MessageType(str, enum.Enum):
    """Message lanes stored by the core."""
    ASSISTANT = "assistant"
    USER = "user"


class Vendor(Base):
    """
    Vendor table - counterparties the agent negotiates with.

    WHAT: Vendor identity plus free-text negotiation behaviour profile
    WHY: Session instructions adapt tone and assertiveness to the vendor
    HOW: Integer primary key shared with the messaging channel's vendor id
    """
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    behaviour = Column(Text, nullable=True)

    negotiations = relationship("Negotiation", back_populates="vendor")

    def __repr__(self):
        return f"<Vendor(id={self.id}, name={self.name})>"


class NegotiationGroup(Base):
    """
    NegotiationGroup table - one purchasing decision contested by N vendors.

    WHAT: Group of sibling negotiations with a one-way running -> finished status
    WHY: Leverage and completion are computed across the group
    HOW: Status enum plus optional accepted offer reference
    """
    __tablename__ = "negotiation_groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    product_name = Column(String(200), nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    status = Column(SQLEnum(GroupStatus), nullable=False, default=GroupStatus.RUNNING)
    accepted_offer_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="check_group_quantity_positive"),
    )

    negotiations = relationship("Negotiation", back_populates="group")

    def __repr__(self):
        return f"<NegotiationGroup(id={self.id}, name={self.name}, status={self.status})>"


class Negotiation(Base):
    """
    Negotiation table - one price discussion with a single vendor.

    WHAT: Binds vendor, conversation, and (optionally) group
    WHY: Snapshots and offers hang off this record
    HOW: Nullable group FK so a negotiation may run standalone
    """
    __tablename__ = "negotiations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    negotiation_group_id = Column(
        Integer, ForeignKey("negotiation_groups.id", ondelete="CASCADE"), nullable=True
    )
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=True)
    conversation_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    group = relationship("NegotiationGroup", back_populates="negotiations")
    vendor = relationship("Vendor", back_populates="negotiations")
    states = relationship("NegotiationState", back_populates="negotiation", cascade="all, delete-orphan")
    offers = relationship("Offer", back_populates="negotiation", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_negotiation_group", "negotiation_group_id"),
    )

    def __repr__(self):
        return f"<Negotiation(id={self.id}, vendor_id={self.vendor_id}, group_id={self.negotiation_group_id})>"


class Message(Base):
    """
    Message table - append-only conversation log.

    WHAT: Agent (assistant) and vendor (user) e-mails of one conversation
    WHY: Full negotiation transcript for review
    HOW: Autoincrement id preserves chronological insertion order
    """
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(String(64), nullable=False)
    type = Column(SQLEnum(MessageType), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_message_conversation", "conversation_id", "id"),
    )

    def __repr__(self):
        return f"<Message(id={self.id}, conversation={self.conversation_id}, type={self.type})>"


class NegotiationState(Base):
    """
    NegotiationState table - price snapshots recorded during a negotiation.

    WHAT: (price, description) pairs in recording order
    WHY: The minimum price is the negotiation's best offer and the leverage source
    HOW: Indexed by (negotiation_id, price) for best-price lookups
    """
    __tablename__ = "negotiation_states"

    id = Column(Integer, primary_key=True, autoincrement=True)
    negotiation_id = Column(Integer, ForeignKey("negotiations.id", ondelete="CASCADE"), nullable=False)
    price = Column(Float, nullable=False)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_state_price_non_negative"),
        Index("idx_state_negotiation_price", "negotiation_id", "price"),
    )

    negotiation = relationship("Negotiation", back_populates="states")

    def __repr__(self):
        return f"<NegotiationState(negotiation_id={self.negotiation_id}, price={self.price})>"


class Offer(Base):
    """
    Offer table - final offers submitted when a negotiation concludes.

    WHAT: Terminal price/description with short pros and cons lists
    WHY: Group completion and offer comparison read these rows
    HOW: JSON columns for the ordered pros/cons lists
    """
    __tablename__ = "offers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    negotiation_id = Column(Integer, ForeignKey("negotiations.id", ondelete="CASCADE"), nullable=False)
    price = Column(Float, nullable=False)
    description = Column(Text, nullable=False, default="")
    pros = Column(JSON, nullable=False, default=list)
    cons = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("price >= 0", name="check_offer_price_non_negative"),
        Index("idx_offer_negotiation", "negotiation_id"),
    )

    negotiation = relationship("Negotiation", back_populates="offers")

    def __repr__(self):
        return f"<Offer(negotiation_id={self.negotiation_id}, price={self.price})>"
