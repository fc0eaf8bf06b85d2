"""Tier-pair rule table.

Every tier-pair special case lives in ``ORDINARY_RULES`` / ``FORCED_RULES``.
A rule decides which sides of a transfer are mutated, which reporting kind
the balance log rows get and whether an explicit channel is mandatory.
Rules are matched top to bottom; the first match wins.
"""

from dataclasses import dataclass
from enum import Enum

from partner_wallet.models.balance_log import TransactionKind, TransferType
from partner_wallet.models.partner import LEAF_TIER
from partner_wallet.utils.errors import InvalidTierPairError


class MutationScope(str, Enum):
    """Which balances a transfer writes."""

    BOTH_SIDES = "both_sides"
    SENDER_ONLY = "sender_only"
    RECEIVER_ONLY = "receiver_only"

    @property
    def touches_sender(self) -> bool:
        return self is not MutationScope.RECEIVER_ONLY

    @property
    def touches_receiver(self) -> bool:
        return self is not MutationScope.SENDER_ONLY


@dataclass(frozen=True)
class TierPairRule:
    senders: range
    receivers: range
    transfer_type: TransferType
    scope: MutationScope
    kind: TransactionKind
    requires_channel: bool = False

    def matches(self, sender_tier: int, receiver_tier: int, transfer_type: TransferType) -> bool:
        return (
            sender_tier in self.senders
            and receiver_tier in self.receivers
            and transfer_type is self.transfer_type
        )


def _tiers(first: int, last: int = LEAF_TIER) -> range:
    return range(first, last + 1)


def _pair(
    senders: range,
    receivers: range,
    scope: MutationScope,
    deposit_kind: TransactionKind,
    withdrawal_kind: TransactionKind,
    requires_channel: bool = False,
) -> tuple[TierPairRule, TierPairRule]:
    return (
        TierPairRule(senders, receivers, TransferType.DEPOSIT, scope, deposit_kind, requires_channel),
        TierPairRule(senders, receivers, TransferType.WITHDRAWAL, scope, withdrawal_kind, requires_channel),
    )


ORDINARY_RULES: tuple[TierPairRule, ...] = (
    # Lv1 <-> Lv2: credit pool channel against head office channel
    *_pair(
        _tiers(1, 1), _tiers(2, 2), MutationScope.BOTH_SIDES,
        TransactionKind.CREDIT_POOL_ALLOCATION, TransactionKind.CREDIT_POOL_RECOVERY,
        requires_channel=True,
    ),
    # Lv1 -> Lv3+: limiting pool channel on deposit, first enabled channel on withdrawal
    *_pair(
        _tiers(1, 1), _tiers(3), MutationScope.BOTH_SIDES,
        TransactionKind.PARTNER_DEPOSIT, TransactionKind.PARTNER_WITHDRAWAL,
    ),
    # Lv2 -> Lv3+: Lv2 channel against receiver ledger, intermediate tiers untouched
    *_pair(
        _tiers(2, 2), _tiers(3), MutationScope.BOTH_SIDES,
        TransactionKind.PARTNER_DEPOSIT, TransactionKind.PARTNER_WITHDRAWAL,
    ),
    *_pair(
        _tiers(3), _tiers(4), MutationScope.BOTH_SIDES,
        TransactionKind.PARTNER_DEPOSIT, TransactionKind.PARTNER_WITHDRAWAL,
    ),
)

FORCED_RULES: tuple[TierPairRule, ...] = (
    *_pair(
        _tiers(1, 1), _tiers(2, 2), MutationScope.BOTH_SIDES,
        TransactionKind.CREDIT_POOL_ALLOCATION, TransactionKind.CREDIT_POOL_RECOVERY,
        requires_channel=True,
    ),
    # Forced Lv1 -> Lv3+ adjusts the receiver only, the pool is left as is
    *_pair(
        _tiers(1, 1), _tiers(3), MutationScope.RECEIVER_ONLY,
        TransactionKind.FORCED_DEPOSIT, TransactionKind.FORCED_WITHDRAWAL,
    ),
    # Lv2 is reconciled by the periodic channel sync, never by forced transfers
    *_pair(
        _tiers(2, 2), _tiers(3), MutationScope.RECEIVER_ONLY,
        TransactionKind.FORCED_DEPOSIT, TransactionKind.FORCED_WITHDRAWAL,
    ),
    *_pair(
        _tiers(3), _tiers(4), MutationScope.BOTH_SIDES,
        TransactionKind.FORCED_DEPOSIT, TransactionKind.FORCED_WITHDRAWAL,
    ),
)


def resolve_rule(
    sender_tier: int,
    receiver_tier: int,
    transfer_type: TransferType,
    forced: bool = False,
) -> TierPairRule:
    """Look up the rule for a tier pair.

    Raises:
        InvalidTierPairError: If the sender is not strictly above the receiver
            or no rule covers the pair
    """
    if sender_tier >= receiver_tier:
        raise InvalidTierPairError(sender_tier, receiver_tier)

    rules = FORCED_RULES if forced else ORDINARY_RULES
    for rule in rules:
        if rule.matches(sender_tier, receiver_tier, transfer_type):
            return rule

    raise InvalidTierPairError(sender_tier, receiver_tier)
