"""Balance transfer engine.

One logical transfer runs as:

    resolve both partners -> validate -> guarded UPDATE per mutated side
    -> one balance log row per mutated side -> commit -> publish event

Both sides and their log rows share a single database transaction. Each
balance write is one ``UPDATE ... SET balance = balance + :delta WHERE
balance + :delta >= 0 RETURNING balance`` statement, so concurrent transfers
can never lose an update or drive a balance negative. When Redis is
configured, per-partner locks additionally serialize the read-validate-write
sequence so validation sees the balance that will be written.

The engine never retries: amounts are not idempotent, so every failure is
reported to the caller, who must re-fetch balances first.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from uuid import uuid4

from redis.asyncio import Redis
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from partner_wallet.config import get_settings
from partner_wallet.logging_config import get_logger, log_context
from partner_wallet.models.balance_log import BalanceLog, TransactionKind, TransferType
from partner_wallet.models.partner import ROOT_TIER, Partner, WalletChannelBalance
from partner_wallet.services.balance_log import BalanceLogWriter
from partner_wallet.services.directory import PartnerDirectory, PartnerNode
from partner_wallet.services.events import BalanceEventPublisher
from partner_wallet.services.validator import (
    TransferApproval,
    normalize_amount,
    validate_transfer,
)
from partner_wallet.services.wallet import (
    ChannelConfig,
    WalletSnapshot,
    apply_delta,
    authoritative_balance,
)
from partner_wallet.utils.errors import (
    ConcurrentModificationError,
    ForcedTransferNotAllowedError,
    InvalidTierPairError,
    NotInHierarchyError,
    PartialFailureError,
    PartnerInactiveError,
    TransferError,
)
from partner_wallet.utils.locks import BalanceLockManager, LockAcquisitionError

logger = get_logger(__name__)

SENDER = "sender"
RECEIVER = "receiver"


@dataclass(frozen=True)
class TransferRequest:
    """A transfer as submitted by the acting (upper) partner.

    Attributes:
        sender_id: Acting partner; funds leave it on deposit, return to it on withdrawal
        receiver_id: Target partner below the sender
        transfer_type: DEPOSIT or WITHDRAWAL
        amount: Positive amount
        memo: Free-form operator note
        channel: Channel selector (mandatory for Lv1 <-> Lv2)
        processed_by: Operator recorded on the log rows (defaults to the sender)
    """

    sender_id: str
    receiver_id: str
    transfer_type: TransferType
    amount: int
    memo: str | None = None
    channel: str | None = None
    processed_by: str | None = None


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a committed transfer.

    A side the transfer did not mutate reports its validated balance.
    """

    transfer_id: str
    transfer_type: TransferType
    transaction_kind: TransactionKind
    forced: bool
    sender_id: str
    receiver_id: str
    amount: int
    sender_balance_after: int
    receiver_balance_after: int
    records: list[BalanceLog] = field(default_factory=list)


@dataclass(frozen=True)
class _Mutation:
    side: str
    node: PartnerNode
    channel: str | None
    delta: int
    counterparty_id: str | None


class TransferService:
    """Executes ordinary and forced balance transfers.

    The service owns its unit of work: it commits on success and rolls back
    on any failure after validation.
    """

    def __init__(
        self,
        session: AsyncSession,
        redis: Redis | None = None,
        config: ChannelConfig | None = None,
        publisher: BalanceEventPublisher | None = None,
    ):
        settings = get_settings()
        self.db = session
        self.config = config or ChannelConfig.from_settings(settings)
        self.directory = PartnerDirectory(session)
        self.log_writer = BalanceLogWriter(session)
        self.locks = (
            BalanceLockManager(redis, lock_ttl_seconds=settings.balance_lock_ttl_seconds)
            if redis is not None
            else None
        )
        self.publisher = publisher or BalanceEventPublisher(
            redis, settings.balance_event_channel
        )

    # =========================================================================
    # Public operations
    # =========================================================================

    async def transfer(self, request: TransferRequest) -> TransferResult:
        """Execute an ordinary transfer.

        The receiver must be a descendant of the sender and both must be active.

        Raises:
            TransferError: Validation failures (nothing written),
                ConcurrentModificationError or PartialFailureError
        """
        processed_by = request.processed_by or request.sender_id
        return await self._execute(request, processed_by=processed_by, forced=False)

    async def forced_transfer(self, admin_id: str, request: TransferRequest) -> TransferResult:
        """Execute an admin forced transfer.

        Skips the ownership and status checks of ordinary transfers and uses
        the forced tier-pair rules. Every log row records ``admin_id``.

        Raises:
            ForcedTransferNotAllowedError: If the admin cannot act for the sender
            TransferError: Same as ``transfer``
        """
        if not admin_id:
            raise ForcedTransferNotAllowedError(admin_id, request.sender_id)
        return await self._execute(request, processed_by=admin_id, forced=True)

    async def snapshot_wallet(self, partner_id: str) -> WalletSnapshot:
        """Current wallet of a partner (read-only)."""
        node = await self.directory.get(partner_id)
        return node.wallet

    # =========================================================================
    # Engine
    # =========================================================================

    @asynccontextmanager
    async def _balance_locks(self, *partner_ids: str) -> AsyncGenerator[None, None]:
        if self.locks is None:
            yield
            return

        try:
            async with self.locks.hold(partner_ids):
                yield
        except LockAcquisitionError as e:
            # Raised before the body ran; release failures are absorbed by hold()
            if e.reason == "timeout":
                reason = "Balance is locked by another transfer, retry after refreshing"
            else:
                reason = f"Balance lock unavailable: {e.reason}"
            raise ConcurrentModificationError(partner_ids[0], reason=reason) from e

    async def _execute(
        self,
        request: TransferRequest,
        processed_by: str,
        forced: bool,
    ) -> TransferResult:
        transfer_id = str(uuid4())

        with log_context(transfer_id=transfer_id):
            try:
                amount = normalize_amount(request.amount)
                async with self._balance_locks(request.sender_id, request.receiver_id):
                    result = await self._locked_execute(
                        transfer_id, request, amount, processed_by, forced
                    )
            except TransferError as e:
                logger.info(
                    "transfer_rejected",
                    code=e.code,
                    sender_id=request.sender_id,
                    receiver_id=request.receiver_id,
                    forced=forced,
                    details=e.details,
                )
                raise

            logger.info(
                "transfer_committed",
                sender_id=result.sender_id,
                receiver_id=result.receiver_id,
                transfer_type=result.transfer_type.value,
                transaction_kind=result.transaction_kind.value,
                amount=result.amount,
                forced=forced,
                processed_by=processed_by,
            )
            await self.publisher.publish_transfer(result)
            return result

    async def _locked_execute(
        self,
        transfer_id: str,
        request: TransferRequest,
        amount: int,
        processed_by: str,
        forced: bool,
    ) -> TransferResult:
        nodes = await self.directory.get_many(
            [request.sender_id, request.receiver_id, processed_by]
        )
        sender = nodes[request.sender_id]
        receiver = nodes[request.receiver_id]

        if sender.tier >= receiver.tier:
            raise InvalidTierPairError(sender.tier, receiver.tier)

        if forced:
            await self._check_admin(nodes[processed_by], sender)
        else:
            await self._check_relationship(sender, receiver)

        approval = validate_transfer(
            sender.wallet,
            receiver.wallet,
            request.transfer_type,
            amount,
            self.config,
            channel=request.channel,
            forced=forced,
        )
        mutations = self._plan(sender, receiver, request.transfer_type, approval)

        records = await self._commit(
            transfer_id, request, approval, mutations, processed_by, forced
        )
        after = {record.partner_id: record.balance_after for record in records}

        return TransferResult(
            transfer_id=transfer_id,
            transfer_type=request.transfer_type,
            transaction_kind=approval.rule.kind,
            forced=forced,
            sender_id=sender.id,
            receiver_id=receiver.id,
            amount=amount,
            sender_balance_after=after.get(
                sender.id, self._unchanged_balance(sender, approval.sender_channel)
            ),
            receiver_balance_after=after.get(
                receiver.id, self._unchanged_balance(receiver, approval.receiver_channel)
            ),
            records=records,
        )

    async def _check_relationship(self, sender: PartnerNode, receiver: PartnerNode) -> None:
        for node in (sender, receiver):
            if not node.is_active:
                raise PartnerInactiveError(node.id, node.status.value)
        if not await self.directory.is_descendant(sender.id, receiver.id):
            raise NotInHierarchyError(sender.id, receiver.id)

    async def _check_admin(self, admin: PartnerNode, sender: PartnerNode) -> None:
        if not admin.is_active:
            raise ForcedTransferNotAllowedError(admin.id, sender.id)
        if admin.id == sender.id or admin.tier == ROOT_TIER:
            return
        if not await self.directory.is_descendant(admin.id, sender.id):
            raise ForcedTransferNotAllowedError(admin.id, sender.id)

    def _unchanged_balance(self, node: PartnerNode, channel: str | None) -> int:
        return authoritative_balance(node.wallet, self.config, channel).amount

    def _plan(
        self,
        sender: PartnerNode,
        receiver: PartnerNode,
        transfer_type: TransferType,
        approval: TransferApproval,
    ) -> list[_Mutation]:
        """Signed deltas per mutated side, debit first.

        Each delta is checked with ``apply_delta`` so a negative result is
        rejected before anything is written.
        """
        scope = approval.rule.scope
        amount = approval.amount

        # Lv1 is a credit pool, not a peer: neither row names a counterparty
        pool_involved = ROOT_TIER in (sender.tier, receiver.tier)

        def counterparty(other: PartnerNode) -> str | None:
            return None if pool_involved else other.id

        sender_delta = -amount if transfer_type is TransferType.DEPOSIT else amount
        planned = []
        if scope.touches_sender:
            planned.append(
                _Mutation(SENDER, sender, approval.sender_channel, sender_delta, counterparty(receiver))
            )
        if scope.touches_receiver:
            planned.append(
                _Mutation(RECEIVER, receiver, approval.receiver_channel, -sender_delta, counterparty(sender))
            )
        planned.sort(key=lambda m: m.delta)

        for mutation in planned:
            apply_delta(mutation.node.wallet, mutation.channel, mutation.delta)
        return planned

    async def _apply(self, mutation: _Mutation) -> int:
        """Apply one signed delta with a single guarded UPDATE.

        Returns:
            Balance after the update

        Raises:
            ConcurrentModificationError: If the guard rejected the update
        """
        partner_id = mutation.node.id
        delta = mutation.delta

        if mutation.channel is None:
            stmt = (
                update(Partner)
                .where(Partner.id == partner_id)
                .where(Partner.ledger_balance + delta >= 0)
                .values(ledger_balance=Partner.ledger_balance + delta)
                .returning(Partner.ledger_balance)
                .execution_options(synchronize_session=False)
            )
        else:
            stmt = (
                update(WalletChannelBalance)
                .where(WalletChannelBalance.partner_id == partner_id)
                .where(WalletChannelBalance.channel == mutation.channel)
                .where(WalletChannelBalance.balance + delta >= 0)
                .values(balance=WalletChannelBalance.balance + delta)
                .returning(WalletChannelBalance.balance)
                .execution_options(synchronize_session=False)
            )

        balance_after = (await self.db.execute(stmt)).scalar_one_or_none()
        if balance_after is not None:
            return balance_after

        if mutation.channel is not None and delta > 0:
            exists = await self.db.scalar(
                select(WalletChannelBalance.id)
                .where(WalletChannelBalance.partner_id == partner_id)
                .where(WalletChannelBalance.channel == mutation.channel)
            )
            if exists is None:
                # First credit on this channel
                self.db.add(
                    WalletChannelBalance(
                        partner_id=partner_id,
                        channel=mutation.channel,
                        balance=delta,
                    )
                )
                await self.db.flush()
                return delta

        raise ConcurrentModificationError(partner_id, channel=mutation.channel)

    async def _commit(
        self,
        transfer_id: str,
        request: TransferRequest,
        approval: TransferApproval,
        mutations: list[_Mutation],
        processed_by: str,
        forced: bool,
    ) -> list[BalanceLog]:
        applied: list[str] = []
        records: list[BalanceLog] = []

        try:
            for mutation in mutations:
                balance_after = await self._apply(mutation)
                applied.append(mutation.side)
                records.append(
                    await self.log_writer.write(
                        transfer_id=transfer_id,
                        partner_id=mutation.node.id,
                        counterparty_id=mutation.counterparty_id,
                        processed_by=processed_by,
                        transfer_type=request.transfer_type,
                        transaction_kind=approval.rule.kind,
                        forced=forced,
                        channel=mutation.channel,
                        amount=mutation.delta,
                        balance_before=balance_after - mutation.delta,
                        balance_after=balance_after,
                        memo=request.memo,
                    )
                )
            await self.db.commit()
        except ConcurrentModificationError:
            await self.db.rollback()
            logger.warning("transfer_rolled_back", reason="guard_rejected", applied=applied)
            raise
        except (SQLAlchemyError, ValueError) as e:
            await self.db.rollback()
            logger.error(
                "transfer_rolled_back",
                reason="write_failed",
                applied=applied,
                error=str(e),
            )
            raise PartialFailureError(
                transfer_id,
                committed_side=applied[-1] if applied else None,
                rolled_back=True,
                cause=str(e),
            ) from e

        return records
