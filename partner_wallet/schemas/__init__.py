"""API schemas."""

from partner_wallet.schemas.transfer import (
    BalanceLogListResponse,
    BalanceLogResponse,
    ChannelBalance,
    DescendantListResponse,
    ForcedTransferCreateRequest,
    PartnerNodeResponse,
    TransferCreateRequest,
    TransferResponse,
    WalletResponse,
)

__all__ = [
    "BalanceLogListResponse",
    "BalanceLogResponse",
    "ChannelBalance",
    "DescendantListResponse",
    "ForcedTransferCreateRequest",
    "PartnerNodeResponse",
    "TransferCreateRequest",
    "TransferResponse",
    "WalletResponse",
]
