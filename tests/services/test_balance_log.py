"""Tests for BalanceLogWriter."""

import pytest

from partner_wallet.models import ImmutableRecordError, TransactionKind, TransferType
from partner_wallet.services.balance_log import BalanceLogWriter, compute_integrity_hash


async def write_row(writer, partner_id, transfer_id="t-1", amount=-300, before=1000, **kwargs):
    return await writer.write(
        transfer_id=transfer_id,
        partner_id=partner_id,
        processed_by=partner_id,
        transfer_type=TransferType.DEPOSIT,
        transaction_kind=TransactionKind.PARTNER_DEPOSIT,
        amount=amount,
        balance_before=before,
        balance_after=before + amount,
        **kwargs,
    )


class TestWrite:
    @pytest.mark.asyncio
    async def test_write_sets_integrity_hash(self, db_session, tree):
        writer = BalanceLogWriter(db_session)

        record = await write_row(writer, tree.main, counterparty_id=tree.sub, memo="m")

        assert record.id is not None
        assert record.integrity_hash == compute_integrity_hash(
            "t-1", tree.main, TransactionKind.PARTNER_DEPOSIT, None, -300, 1000, 700
        )
        assert writer.verify_integrity(record) is True

    @pytest.mark.asyncio
    async def test_inconsistent_balances_rejected(self, db_session, tree):
        writer = BalanceLogWriter(db_session)

        with pytest.raises(ValueError):
            await writer.write(
                transfer_id="t-1",
                partner_id=tree.main,
                processed_by=tree.main,
                transfer_type=TransferType.DEPOSIT,
                transaction_kind=TransactionKind.PARTNER_DEPOSIT,
                amount=-300,
                balance_before=1000,
                balance_after=800,
            )

    @pytest.mark.asyncio
    async def test_tampering_is_detected(self, db_session, tree):
        writer = BalanceLogWriter(db_session)
        record = await write_row(writer, tree.main)

        db_session.expunge(record)
        record.balance_after = 999_999

        assert writer.verify_integrity(record) is False

    def test_channel_changes_hash(self):
        args = ("t", "p", TransactionKind.CREDIT_POOL_ALLOCATION)

        assert compute_integrity_hash(*args, "invest", 1, 0, 1) != compute_integrity_hash(
            *args, "oroplay", 1, 0, 1
        )


class TestAppendOnly:
    @pytest.mark.asyncio
    async def test_update_rejected(self, db_session, tree):
        record = await write_row(BalanceLogWriter(db_session), tree.main)
        await db_session.commit()

        record.memo = "edited"
        with pytest.raises(ImmutableRecordError):
            await db_session.flush()
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_delete_rejected(self, db_session, tree):
        record = await write_row(BalanceLogWriter(db_session), tree.main)
        await db_session.commit()

        await db_session.delete(record)
        with pytest.raises(ImmutableRecordError):
            await db_session.flush()
        await db_session.rollback()


class TestRead:
    @pytest.mark.asyncio
    async def test_history_paginates(self, db_session, tree):
        writer = BalanceLogWriter(db_session)
        for i in range(5):
            await write_row(writer, tree.main, transfer_id=f"t-{i}", amount=10, before=i * 10)
        await write_row(writer, tree.sub, transfer_id="t-other")
        await db_session.commit()

        first_page, total = await writer.history(tree.main, limit=3)
        second_page, _ = await writer.history(tree.main, limit=3, offset=3)

        assert total == 5
        assert len(first_page) == 3
        assert len(second_page) == 2
        ids = {r.id for r in first_page} | {r.id for r in second_page}
        assert len(ids) == 5

    @pytest.mark.asyncio
    async def test_history_empty(self, db_session, tree):
        records, total = await BalanceLogWriter(db_session).history(tree.dist)

        assert records == []
        assert total == 0

    @pytest.mark.asyncio
    async def test_by_transfer(self, db_session, tree):
        writer = BalanceLogWriter(db_session)
        await write_row(writer, tree.main, transfer_id="pair", amount=-50, before=100)
        await write_row(writer, tree.sub, transfer_id="pair", amount=50, before=0)
        await write_row(writer, tree.sub, transfer_id="unrelated", amount=1, before=50)
        await db_session.commit()

        records = await writer.by_transfer("pair")

        assert [r.amount for r in records] == [-50, 50]
        assert sum(r.amount for r in records) == 0
