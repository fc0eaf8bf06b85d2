"""Balance log writer and reader."""

import hashlib

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from partner_wallet.logging_config import get_logger
from partner_wallet.models.balance_log import BalanceLog, TransactionKind, TransferType

logger = get_logger(__name__)


def compute_integrity_hash(
    transfer_id: str,
    partner_id: str,
    transaction_kind: TransactionKind,
    channel: str | None,
    amount: int,
    balance_before: int,
    balance_after: int,
) -> str:
    """SHA-256 over the mutation fields of one balance log row."""
    data = (
        f"{transfer_id}:{partner_id}:{transaction_kind.value}:{channel or ''}:"
        f"{amount}:{balance_before}:{balance_after}"
    )
    return hashlib.sha256(data.encode()).hexdigest()


class BalanceLogWriter:
    """Append-only access to ``balance_logs``.

    Rows are added to the caller's session; committing them together with
    the balance mutation they describe is the caller's job.
    """

    def __init__(self, session: AsyncSession):
        self.db = session

    async def write(
        self,
        *,
        transfer_id: str,
        partner_id: str,
        processed_by: str,
        transfer_type: TransferType,
        transaction_kind: TransactionKind,
        amount: int,
        balance_before: int,
        balance_after: int,
        counterparty_id: str | None = None,
        channel: str | None = None,
        forced: bool = False,
        memo: str | None = None,
    ) -> BalanceLog:
        """Append one row and flush it.

        Raises:
            ValueError: If before/after do not differ by ``amount``
        """
        if balance_before + amount != balance_after:
            raise ValueError(
                f"Inconsistent balance log: {balance_before} {amount:+} != {balance_after}"
            )

        record = BalanceLog(
            transfer_id=transfer_id,
            partner_id=partner_id,
            counterparty_id=counterparty_id,
            processed_by=processed_by,
            transfer_type=transfer_type,
            transaction_kind=transaction_kind,
            forced=forced,
            channel=channel,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            memo=memo,
            integrity_hash=compute_integrity_hash(
                transfer_id,
                partner_id,
                transaction_kind,
                channel,
                amount,
                balance_before,
                balance_after,
            ),
        )
        self.db.add(record)
        await self.db.flush()

        logger.debug(
            "balance_log_written",
            transfer_id=transfer_id,
            partner_id=partner_id,
            channel=channel,
            amount=amount,
        )
        return record

    async def history(
        self,
        partner_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[BalanceLog], int]:
        """Rows of one partner, newest first, with the total count."""
        total = await self.db.scalar(
            select(func.count()).select_from(BalanceLog).where(BalanceLog.partner_id == partner_id)
        )
        result = await self.db.execute(
            select(BalanceLog)
            .where(BalanceLog.partner_id == partner_id)
            .order_by(BalanceLog.created_at.desc(), BalanceLog.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def by_transfer(self, transfer_id: str) -> list[BalanceLog]:
        """All rows of one logical transfer."""
        result = await self.db.execute(
            select(BalanceLog)
            .where(BalanceLog.transfer_id == transfer_id)
            .order_by(BalanceLog.amount)
        )
        return list(result.scalars().all())

    @staticmethod
    def verify_integrity(record: BalanceLog) -> bool:
        """Recompute the hash of a stored row and compare."""
        expected = compute_integrity_hash(
            record.transfer_id,
            record.partner_id,
            record.transaction_kind,
            record.channel,
            record.amount,
            record.balance_before,
            record.balance_after,
        )
        return record.integrity_hash == expected
