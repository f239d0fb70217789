"""
Negotiation state store.

WHAT: Typed read/write access to vendors, groups, negotiations, messages,
      price snapshots and final offers
WHY: The store is the only synchronization point between concurrently
     running vendor sessions
HOW: One short SQLAlchemy unit of work per call, no caching; database
     failures surface as StoreError
"""

from typing import Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .database import SessionLocal, get_db
from .models import (
    Vendor, NegotiationGroup, Negotiation, Message, NegotiationState, Offer,
    GroupStatus, MessageType
)
from ..models.negotiation import (
    VendorProfile, GroupRecord, NegotiationRecord, MessageRecord,
    PriceSnapshot, OfferRecord
)
from ..utils.exceptions import StoreError, OfferNotInGroupError
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _group_record(row: NegotiationGroup) -> GroupRecord:
    return GroupRecord(
        id=row.id,
        name=row.name,
        product_name=row.product_name,
        quantity=row.quantity,
        status=GroupStatus(row.status).value,
        accepted_offer_id=row.accepted_offer_id,
        created_at=row.created_at
    )


def _message_record(row: Message) -> MessageRecord:
    return MessageRecord(
        id=row.id,
        conversation_id=row.conversation_id,
        type=MessageType(row.type).value,
        message=row.message,
        created_at=row.created_at
    )


class NegotiationStore:
    """
    Durable store for negotiation state.

    WHAT: CRUD surface used by tools, leverage engine and completion protocol
    WHY: Sibling sessions mutate the same rows; every read must hit the database
    HOW: Each method runs inside get_db() and converts rows to read models
    """

    def __init__(self, session_factory: sessionmaker | None = None):
        """
        Initialize store.

        Args:
            session_factory: SQLAlchemy sessionmaker (defaults to SessionLocal)
        """
        self.session_factory = session_factory or SessionLocal

    def _run(self, operation: str, fn):
        """Run fn(db) in one unit of work, translating database errors."""
        try:
            with get_db(self.session_factory) as db:
                return fn(db)
        except SQLAlchemyError as e:
            logger.error(f"Store operation {operation} failed: {e}")
            raise StoreError(operation, str(e)) from e

    # ------------------------------------------------------------------
    # Vendors
    # ------------------------------------------------------------------

    def create_vendor(self, name: str, behaviour: str | None = None, vendor_id: int | None = None) -> VendorProfile:
        def _create(db):
            vendor = Vendor(id=vendor_id, name=name, behaviour=behaviour)
            db.add(vendor)
            db.flush()
            return VendorProfile.model_validate(vendor)

        return self._run("create_vendor", _create)

    def get_vendor(self, vendor_id: int) -> Optional[VendorProfile]:
        def _get(db):
            vendor = db.get(Vendor, vendor_id)
            return VendorProfile.model_validate(vendor) if vendor else None

        return self._run("get_vendor", _get)

    def get_vendors(self, vendor_ids: Iterable[int]) -> List[VendorProfile]:
        ids = list(vendor_ids)
        if not ids:
            return []

        def _list(db):
            rows = db.scalars(select(Vendor).where(Vendor.id.in_(ids)).order_by(Vendor.id))
            return [VendorProfile.model_validate(row) for row in rows]

        return self._run("get_vendors", _list)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def create_group(self, name: str, quantity: int = 1, product_name: str | None = None) -> GroupRecord:
        def _create(db):
            group = NegotiationGroup(
                name=name,
                product_name=product_name,
                quantity=quantity,
                status=GroupStatus.RUNNING
            )
            db.add(group)
            db.flush()
            return _group_record(group)

        group = self._run("create_group", _create)
        logger.info(f"Created negotiation group {group.id} ({group.name})")
        return group

    def get_group(self, group_id: int) -> Optional[GroupRecord]:
        def _get(db):
            group = db.get(NegotiationGroup, group_id)
            return _group_record(group) if group else None

        return self._run("get_group", _get)

    def mark_group_finished(self, group_id: int) -> bool:
        """
        Transition a group from running to finished.

        The update is conditional on the running status, so repeated or racing
        calls are harmless and a finished or accepted group never moves back.

        Returns:
            True if this call performed the transition
        """
        def _mark(db):
            result = db.execute(
                update(NegotiationGroup)
                .where(NegotiationGroup.id == group_id)
                .where(NegotiationGroup.status == GroupStatus.RUNNING)
                .values(status=GroupStatus.FINISHED)
            )
            return result.rowcount > 0

        return self._run("mark_group_finished", _mark)

    def accept_offer(self, group_id: int, offer_id: int) -> GroupRecord:
        """
        Record the principal's choice of final offer for a group.

        Raises:
            StoreError: Group or offer missing, or database failure
            OfferNotInGroupError: Offer belongs to a negotiation outside the group
        """
        def _accept(db):
            group = db.get(NegotiationGroup, group_id)
            if group is None:
                raise LookupError(f"negotiation group {group_id} not found")
            offer = db.get(Offer, offer_id)
            if offer is None:
                raise LookupError(f"offer {offer_id} not found")
            negotiation = db.get(Negotiation, offer.negotiation_id)
            if negotiation is None or negotiation.negotiation_group_id != group_id:
                raise OfferNotInGroupError(offer_id, group_id)

            group.accepted_offer_id = offer_id
            group.status = GroupStatus.ACCEPTED
            db.flush()
            return _group_record(group)

        try:
            group = self._run("accept_offer", _accept)
        except LookupError as e:
            raise StoreError("accept_offer", str(e)) from e

        logger.info(f"Group {group_id} accepted offer {offer_id}")
        return group

    # ------------------------------------------------------------------
    # Negotiations
    # ------------------------------------------------------------------

    def create_negotiation(
        self,
        vendor_id: int | None,
        conversation_id: str | None,
        group_id: int | None = None
    ) -> NegotiationRecord:
        def _create(db):
            negotiation = Negotiation(
                vendor_id=vendor_id,
                conversation_id=conversation_id,
                negotiation_group_id=group_id
            )
            db.add(negotiation)
            db.flush()
            return NegotiationRecord.model_validate(negotiation)

        return self._run("create_negotiation", _create)

    def get_negotiation(self, negotiation_id: int) -> Optional[NegotiationRecord]:
        def _get(db):
            negotiation = db.get(Negotiation, negotiation_id)
            return NegotiationRecord.model_validate(negotiation) if negotiation else None

        return self._run("get_negotiation", _get)

    def list_group_negotiations(self, group_id: int) -> List[NegotiationRecord]:
        def _list(db):
            rows = db.scalars(
                select(Negotiation)
                .where(Negotiation.negotiation_group_id == group_id)
                .order_by(Negotiation.id)
            )
            return [NegotiationRecord.model_validate(row) for row in rows]

        return self._run("list_group_negotiations", _list)

    def list_group_negotiation_ids(self, group_id: int, exclude: int | None = None) -> List[int]:
        def _list(db):
            query = select(Negotiation.id).where(Negotiation.negotiation_group_id == group_id)
            if exclude is not None:
                query = query.where(Negotiation.id != exclude)
            return list(db.scalars(query.order_by(Negotiation.id)))

        return self._run("list_group_negotiation_ids", _list)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def append_message(self, conversation_id: str, type: str | MessageType, body: str) -> MessageRecord:
        def _append(db):
            message = Message(
                conversation_id=conversation_id,
                type=MessageType(type),
                message=body
            )
            db.add(message)
            db.flush()
            return _message_record(message)

        return self._run("append_message", _append)

    def list_messages(self, conversation_id: str) -> List[MessageRecord]:
        def _list(db):
            rows = db.scalars(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.id)
            )
            return [_message_record(row) for row in rows]

        return self._run("list_messages", _list)

    # ------------------------------------------------------------------
    # Price snapshots
    # ------------------------------------------------------------------

    def append_state(self, negotiation_id: int, price: float, description: str) -> PriceSnapshot:
        def _append(db):
            state = NegotiationState(
                negotiation_id=negotiation_id,
                price=price,
                description=description
            )
            db.add(state)
            db.flush()
            return PriceSnapshot.model_validate(state)

        return self._run("append_state", _append)

    def list_states(self, negotiation_ids: Iterable[int], limit: int | None = None) -> List[PriceSnapshot]:
        """Snapshots of the given negotiations, cheapest first."""
        ids = list(negotiation_ids)
        if not ids:
            return []

        def _list(db):
            query = (
                select(NegotiationState)
                .where(NegotiationState.negotiation_id.in_(ids))
                .order_by(NegotiationState.price.asc(), NegotiationState.id.asc())
            )
            if limit is not None:
                query = query.limit(limit)
            return [PriceSnapshot.model_validate(row) for row in db.scalars(query)]

        return self._run("list_states", _list)

    def list_state_history(self, negotiation_ids: Iterable[int]) -> List[PriceSnapshot]:
        """Snapshots of the given negotiations in recording order."""
        ids = list(negotiation_ids)
        if not ids:
            return []

        def _list(db):
            rows = db.scalars(
                select(NegotiationState)
                .where(NegotiationState.negotiation_id.in_(ids))
                .order_by(NegotiationState.id.asc())
            )
            return [PriceSnapshot.model_validate(row) for row in rows]

        return self._run("list_state_history", _list)

    # ------------------------------------------------------------------
    # Final offers
    # ------------------------------------------------------------------

    def append_offer(
        self,
        negotiation_id: int,
        description: str,
        price: float,
        pros: list[str] | None = None,
        cons: list[str] | None = None
    ) -> OfferRecord:
        def _append(db):
            offer = Offer(
                negotiation_id=negotiation_id,
                description=description,
                price=price,
                pros=list(pros or []),
                cons=list(cons or [])
            )
            db.add(offer)
            db.flush()
            return OfferRecord.model_validate(offer)

        return self._run("append_offer", _append)

    def list_offers(self, negotiation_ids: Iterable[int], limit: int | None = None) -> List[OfferRecord]:
        """Final offers of the given negotiations, cheapest first."""
        ids = list(negotiation_ids)
        if not ids:
            return []

        def _list(db):
            query = (
                select(Offer)
                .where(Offer.negotiation_id.in_(ids))
                .order_by(Offer.price.asc(), Offer.id.asc())
            )
            if limit is not None:
                query = query.limit(limit)
            return [OfferRecord.model_validate(row) for row in db.scalars(query)]

        return self._run("list_offers", _list)
