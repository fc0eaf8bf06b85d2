"""Balance log (append-only transfer audit trail).

One row per balance mutation. A logical transfer writes one or two rows that
share a ``transfer_id``; the signed amounts of a two-sided transfer net to zero.
Rows are never updated or deleted.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    String,
    event,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from partner_wallet.models.base import Base, UUIDMixin, utcnow


class TransferType(str, Enum):
    """Direction of a transfer as chosen by the acting partner.

    - DEPOSIT: funds move from the acting partner down to the target
    - WITHDRAWAL: funds are recovered from the target up to the acting partner
    """

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class TransactionKind(str, Enum):
    """Tier-pair derived sub-kind used for reporting."""

    # Lv1 <-> Lv2 credit pool bridge
    CREDIT_POOL_ALLOCATION = "credit_pool_allocation"
    CREDIT_POOL_RECOVERY = "credit_pool_recovery"

    # Ordinary partner transfers
    PARTNER_DEPOSIT = "partner_deposit"
    PARTNER_WITHDRAWAL = "partner_withdrawal"

    # Admin forced transfers
    FORCED_DEPOSIT = "forced_deposit"
    FORCED_WITHDRAWAL = "forced_withdrawal"


class BalanceLog(Base, UUIDMixin):
    """One balance mutation of one partner."""

    __tablename__ = "balance_logs"

    transfer_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
        comment="Correlation key shared by both rows of a transfer",
    )
    partner_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("partners.id", ondelete="RESTRICT"),
        nullable=False,
    )
    counterparty_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("partners.id", ondelete="SET NULL"),
        nullable=True,
        comment="Null when the counterparty is the Lv1 credit pool",
    )
    processed_by: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("partners.id", ondelete="RESTRICT"),
        nullable=False,
    )

    transfer_type: Mapped[TransferType] = mapped_column(
        SQLEnum(
            TransferType,
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
    )
    transaction_kind: Mapped[TransactionKind] = mapped_column(
        SQLEnum(
            TransactionKind,
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
        index=True,
    )
    forced: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    channel: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="Set only when a channel balance was touched",
    )

    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Signed amount (+credit/-debit)",
    )
    balance_before: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )
    balance_after: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    memo: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    integrity_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="SHA-256 hash for tamper detection",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_balance_logs_partner_created", "partner_id", "created_at"),
        Index("ix_balance_logs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<BalanceLog {self.transfer_id[:8]}... "
            f"partner={self.partner_id[:8]}... amount={self.amount:+}>"
        )


class ImmutableRecordError(Exception):
    """Raised on an attempt to change a written balance log row."""


@event.listens_for(BalanceLog, "before_update")
def _reject_update(mapper, connection, target: BalanceLog) -> None:
    raise ImmutableRecordError(f"balance_logs row {target.id} is append-only")


@event.listens_for(BalanceLog, "before_delete")
def _reject_delete(mapper, connection, target: BalanceLog) -> None:
    raise ImmutableRecordError(f"balance_logs row {target.id} is append-only")
