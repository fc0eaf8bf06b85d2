"""Database models."""

from partner_wallet.models.balance_log import (
    BalanceLog,
    ImmutableRecordError,
    TransactionKind,
    TransferType,
)
from partner_wallet.models.base import Base, TimestampMixin, UUIDMixin
from partner_wallet.models.partner import (
    HEAD_OFFICE_TIER,
    LEAF_TIER,
    ROOT_TIER,
    Partner,
    PartnerKind,
    PartnerStatus,
    WalletChannelBalance,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "Partner",
    "PartnerKind",
    "PartnerStatus",
    "WalletChannelBalance",
    "BalanceLog",
    "ImmutableRecordError",
    "TransactionKind",
    "TransferType",
    "ROOT_TIER",
    "HEAD_OFFICE_TIER",
    "LEAF_TIER",
]
