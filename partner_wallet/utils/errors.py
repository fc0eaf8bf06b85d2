"""Exception classes for balance transfer errors.

Every error carries a code for programmatic handling, a message for the
operator console and a details dict. Balance rejections always include
``available`` and ``required`` so the console can show the remaining headroom.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for transfer errors."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    FORBIDDEN = "FORBIDDEN"

    # Request validation
    INVALID_AMOUNT = "INVALID_AMOUNT"
    CHANNEL_REQUIRED = "CHANNEL_REQUIRED"
    INVALID_TIER_PAIR = "INVALID_TIER_PAIR"

    # Directory
    PARTNER_NOT_FOUND = "PARTNER_NOT_FOUND"
    NOT_IN_HIERARCHY = "NOT_IN_HIERARCHY"
    PARTNER_INACTIVE = "PARTNER_INACTIVE"

    # Balance
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INSUFFICIENT_CHANNEL_FUNDS = "INSUFFICIENT_CHANNEL_FUNDS"
    NO_ENABLED_CHANNELS = "NO_ENABLED_CHANNELS"
    WOULD_GO_NEGATIVE = "WOULD_GO_NEGATIVE"

    # Write path
    PARTIAL_FAILURE = "PARTIAL_FAILURE"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"


class TransferError(Exception):
    """Base exception for balance transfer errors.

    Attributes:
        code: Error code for programmatic handling
        message: Operator-facing error message
        details: Additional error details
        recoverable: Whether the request may be retried (after correcting
            input or re-fetching balances)
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        self.code = code if isinstance(code, str) else code.value
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class InvalidAmountError(TransferError):
    """Raised when the transfer amount is not a positive finite value."""

    def __init__(self, amount: Any):
        super().__init__(
            code=ErrorCode.INVALID_AMOUNT,
            message=f"Invalid amount: {amount}",
            details={"amount": amount},
        )


class ChannelRequiredError(TransferError):
    """Raised when a channel selector is missing or unknown."""

    def __init__(self, channel: str | None, allowed: list[str]):
        if channel is None:
            message = "A funding channel must be selected for this transfer"
        else:
            message = f"Unknown funding channel: {channel}"
        super().__init__(
            code=ErrorCode.CHANNEL_REQUIRED,
            message=message,
            details={"channel": channel, "allowed": allowed},
        )


class InvalidTierPairError(TransferError):
    """Raised when the sender is not strictly above the receiver."""

    def __init__(self, sender_tier: int, receiver_tier: int):
        super().__init__(
            code=ErrorCode.INVALID_TIER_PAIR,
            message=f"Transfers from tier {sender_tier} to tier {receiver_tier} are not allowed",
            details={"senderTier": sender_tier, "receiverTier": receiver_tier},
        )


class PartnerNotFoundError(TransferError):
    """Raised when a partner does not exist."""

    def __init__(self, partner_id: str):
        super().__init__(
            code=ErrorCode.PARTNER_NOT_FOUND,
            message=f"Partner not found: {partner_id}",
            details={"partnerId": partner_id},
            recoverable=False,
        )


class NotInHierarchyError(TransferError):
    """Raised when the receiver is not below the sender in the partner tree."""

    def __init__(self, sender_id: str, receiver_id: str):
        super().__init__(
            code=ErrorCode.NOT_IN_HIERARCHY,
            message="Receiver is not a descendant of the sender",
            details={"senderId": sender_id, "receiverId": receiver_id},
        )


class PartnerInactiveError(TransferError):
    """Raised when an ordinary transfer touches a partner that is not active."""

    def __init__(self, partner_id: str, status: str):
        super().__init__(
            code=ErrorCode.PARTNER_INACTIVE,
            message=f"Partner {partner_id} is {status}",
            details={"partnerId": partner_id, "status": status},
        )


class InsufficientBalanceError(TransferError):
    """Raised when a ledger balance does not cover the amount."""

    def __init__(self, partner_id: str, available: int, required: int):
        super().__init__(
            code=ErrorCode.INSUFFICIENT_BALANCE,
            message=f"Insufficient balance: available {available:,}, required {required:,}",
            details={
                "partnerId": partner_id,
                "available": available,
                "required": required,
                "channel": None,
            },
        )


class InsufficientChannelFundsError(TransferError):
    """Raised when the limiting channel balance does not cover the amount."""

    def __init__(
        self,
        partner_id: str,
        channel: str | None,
        available: int,
        required: int,
    ):
        super().__init__(
            code=ErrorCode.INSUFFICIENT_CHANNEL_FUNDS,
            message=(
                f"Insufficient {channel or 'channel'} funds: "
                f"available {available:,}, required {required:,}"
            ),
            details={
                "partnerId": partner_id,
                "available": available,
                "required": required,
                "channel": channel,
            },
        )


class NoEnabledChannelsError(TransferError):
    """Raised when no funding channel is enabled for a minimum-channel check."""

    def __init__(self, partner_id: str, required: int):
        super().__init__(
            code=ErrorCode.NO_ENABLED_CHANNELS,
            message="No funding channel is enabled",
            details={
                "partnerId": partner_id,
                "available": 0,
                "required": required,
                "channel": None,
            },
        )


class WouldGoNegativeError(TransferError):
    """Raised when applying a delta would drive a balance below zero."""

    def __init__(
        self,
        partner_id: str,
        channel: str | None,
        balance: int,
        delta: int,
    ):
        super().__init__(
            code=ErrorCode.WOULD_GO_NEGATIVE,
            message=f"Balance would go negative: {balance:,} {delta:+,}",
            details={
                "partnerId": partner_id,
                "channel": channel,
                "available": balance,
                "required": -delta,
            },
        )


class ConcurrentModificationError(TransferError):
    """Raised when a balance changed between validation and commit.

    The caller must re-fetch balances before retrying.
    """

    def __init__(self, partner_id: str, channel: str | None = None, reason: str | None = None):
        super().__init__(
            code=ErrorCode.CONCURRENT_MODIFICATION,
            message=reason or f"Balance of partner {partner_id} changed concurrently",
            details={"partnerId": partner_id, "channel": channel},
        )


class PartialFailureError(TransferError):
    """Raised when a write fails after validation passed.

    ``committed_side`` names the side whose mutation had been applied before
    the failure; ``rolled_back`` tells whether that mutation was undone.
    """

    def __init__(
        self,
        transfer_id: str,
        committed_side: str | None,
        rolled_back: bool,
        cause: str,
    ):
        super().__init__(
            code=ErrorCode.PARTIAL_FAILURE,
            message=f"Transfer {transfer_id} failed after validation: {cause}",
            details={
                "transferId": transfer_id,
                "committedSide": committed_side,
                "rolledBack": rolled_back,
            },
        )


class ForcedTransferNotAllowedError(TransferError):
    """Raised when the acting admin has no authority over the funding side."""

    def __init__(self, admin_id: str, sender_id: str):
        super().__init__(
            code=ErrorCode.FORBIDDEN,
            message="Forced transfers require an active admin at or above the sender",
            details={"adminId": admin_id, "senderId": sender_id},
            recoverable=False,
        )
