"""Balance transfer API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from partner_wallet.models.balance_log import TransactionKind, TransferType
from partner_wallet.models.partner import PartnerKind, PartnerStatus


# =============================================================================
# Request Schemas
# =============================================================================


class TransferCreateRequest(BaseModel):
    """입출금 요청 (상위 파트너 -> 하위 파트너)."""

    target_id: str = Field(..., alias="targetId", description="대상 하위 파트너 ID")
    transfer_type: TransferType = Field(..., alias="type", description="deposit / withdrawal")
    amount: int = Field(..., description="금액")
    memo: str | None = Field(None, max_length=500, description="메모")
    channel: str | None = Field(
        None, max_length=32, description="지갑 채널 (Lv1 <-> Lv2 필수)"
    )

    model_config = {"populate_by_name": True}


class ForcedTransferCreateRequest(TransferCreateRequest):
    """강제 입출금 요청 (관리자)."""

    sender_id: str | None = Field(
        None, alias="senderId", description="출금/입금 기준 파트너 (기본: 관리자 본인)"
    )


# =============================================================================
# Response Schemas
# =============================================================================


class BalanceLogResponse(BaseModel):
    """잔액 변경 기록."""

    id: str
    transfer_id: str = Field(alias="transferId")
    partner_id: str = Field(alias="partnerId")
    counterparty_id: str | None = Field(alias="counterpartyId")
    processed_by: str = Field(alias="processedBy")
    transfer_type: TransferType = Field(alias="transferType")
    transaction_kind: TransactionKind = Field(alias="transactionKind")
    forced: bool
    channel: str | None
    amount: int
    balance_before: int = Field(alias="balanceBefore")
    balance_after: int = Field(alias="balanceAfter")
    memo: str | None
    created_at: datetime = Field(alias="createdAt")

    model_config = {"from_attributes": True, "populate_by_name": True}


class BalanceLogListResponse(BaseModel):
    """잔액 변경 기록 목록."""

    items: list[BalanceLogResponse]
    total: int
    limit: int
    offset: int


class TransferResponse(BaseModel):
    """입출금 결과."""

    transfer_id: str = Field(alias="transferId")
    transfer_type: TransferType = Field(alias="type")
    transaction_kind: TransactionKind = Field(alias="transactionKind")
    forced: bool
    sender_id: str = Field(alias="senderId")
    receiver_id: str = Field(alias="receiverId")
    amount: int
    sender_balance_after: int = Field(alias="senderBalanceAfter")
    receiver_balance_after: int = Field(alias="receiverBalanceAfter")
    records: list[BalanceLogResponse]

    model_config = {"from_attributes": True, "populate_by_name": True}


class ChannelBalance(BaseModel):
    channel: str | None
    amount: int


class WalletResponse(BaseModel):
    """지갑 스냅샷."""

    partner_id: str = Field(alias="partnerId")
    tier: int
    kind: str
    ledger_balance: int = Field(alias="ledgerBalance")
    channels: dict[str, int]
    balances: list[ChannelBalance]

    model_config = {"populate_by_name": True}


class PartnerNodeResponse(BaseModel):
    """하위 파트너."""

    id: str
    tier: int
    parent_id: str | None = Field(alias="parentId")
    kind: PartnerKind
    status: PartnerStatus
    nickname: str
    wallet: WalletResponse

    model_config = {"populate_by_name": True}


class DescendantListResponse(BaseModel):
    items: list[PartnerNodeResponse]
    total: int
