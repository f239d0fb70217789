"""
Domain exceptions for the negotiation core.

WHAT: Typed errors for store, channel, and session failures
WHY: Let callers tell fatal failures from recoverable ones
HOW: Exception classes carrying an error code and structured details
"""

from typing import Optional, Any


class NegotiationError(Exception):
    """Base class for negotiation core exceptions."""

    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class StoreError(NegotiationError):
    """Raised when a read or write against the state store fails."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            message=f"Store operation '{operation}' failed: {reason}",
            code="STORE_ERROR",
            details={"operation": operation, "reason": reason}
        )
        self.operation = operation


class ChannelError(NegotiationError):
    """Raised when the vendor messaging channel fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(
            message=message,
            code="CHANNEL_ERROR",
            details={"status_code": status_code} if status_code is not None else None
        )
        self.status_code = status_code


class NegotiationRecordError(NegotiationError):
    """Raised when the negotiation record is required but could not be written."""

    def __init__(self, vendor_id: int, group_id: Optional[int], reason: str):
        super().__init__(
            message=f"Could not create negotiation record for vendor {vendor_id}: {reason}",
            code="NEGOTIATION_RECORD_FAILED",
            details={"vendor_id": vendor_id, "group_id": group_id}
        )


class SessionNotInitializedError(NegotiationError):
    """Raised when a session is invoked before initialize() completed."""

    def __init__(self, state: str):
        super().__init__(
            message=f"Session is not active (state: {state}). Call initialize() first.",
            code="SESSION_NOT_INITIALIZED",
            details={"state": state}
        )


class OfferNotInGroupError(NegotiationError):
    """Raised when accepting an offer that belongs to another negotiation group."""

    def __init__(self, offer_id: int, group_id: int):
        super().__init__(
            message=f"Offer {offer_id} does not belong to negotiation group {group_id}",
            code="OFFER_NOT_IN_GROUP",
            details={"offer_id": offer_id, "group_id": group_id}
        )
