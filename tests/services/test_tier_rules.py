"""Tests for the tier-pair rule table."""

import pytest

from partner_wallet.models.balance_log import TransactionKind, TransferType
from partner_wallet.services.tier_rules import (
    FORCED_RULES,
    ORDINARY_RULES,
    MutationScope,
    resolve_rule,
)
from partner_wallet.utils.errors import InvalidTierPairError

DEPOSIT = TransferType.DEPOSIT
WITHDRAWAL = TransferType.WITHDRAWAL


class TestResolveRule:
    @pytest.mark.parametrize("transfer_type", [DEPOSIT, WITHDRAWAL])
    def test_credit_pool_bridge(self, transfer_type):
        rule = resolve_rule(1, 2, transfer_type)

        assert rule.scope is MutationScope.BOTH_SIDES
        assert rule.requires_channel is True

    def test_credit_pool_kinds(self):
        assert resolve_rule(1, 2, DEPOSIT).kind is TransactionKind.CREDIT_POOL_ALLOCATION
        assert resolve_rule(1, 2, WITHDRAWAL).kind is TransactionKind.CREDIT_POOL_RECOVERY

    @pytest.mark.parametrize("receiver_tier", [3, 4, 7])
    @pytest.mark.parametrize("transfer_type", [DEPOSIT, WITHDRAWAL])
    def test_root_to_lower_tiers_mutates_both(self, receiver_tier, transfer_type):
        rule = resolve_rule(1, receiver_tier, transfer_type)

        assert rule.scope is MutationScope.BOTH_SIDES
        assert rule.requires_channel is False

    def test_root_to_lower_tier_kinds(self):
        assert resolve_rule(1, 3, DEPOSIT).kind is TransactionKind.PARTNER_DEPOSIT
        assert resolve_rule(1, 3, WITHDRAWAL).kind is TransactionKind.PARTNER_WITHDRAWAL

    @pytest.mark.parametrize("receiver_tier", [3, 4, 6])
    def test_head_office_downstream_mutates_both(self, receiver_tier):
        rule = resolve_rule(2, receiver_tier, DEPOSIT)

        assert rule.scope is MutationScope.BOTH_SIDES
        assert rule.kind is TransactionKind.PARTNER_DEPOSIT

    @pytest.mark.parametrize("sender_tier,receiver_tier", [(3, 4), (3, 7), (5, 6), (6, 7)])
    def test_ledger_pairs(self, sender_tier, receiver_tier):
        rule = resolve_rule(sender_tier, receiver_tier, WITHDRAWAL)

        assert rule.scope is MutationScope.BOTH_SIDES
        assert rule.kind is TransactionKind.PARTNER_WITHDRAWAL

    @pytest.mark.parametrize("sender_tier,receiver_tier", [(2, 2), (3, 2), (4, 4), (7, 6)])
    def test_sender_must_be_above_receiver(self, sender_tier, receiver_tier):
        with pytest.raises(InvalidTierPairError) as exc_info:
            resolve_rule(sender_tier, receiver_tier, DEPOSIT)

        assert exc_info.value.details == {
            "senderTier": sender_tier,
            "receiverTier": receiver_tier,
        }


class TestForcedRules:
    @pytest.mark.parametrize("receiver_tier", [3, 4, 5])
    def test_head_office_balance_is_never_forced(self, receiver_tier):
        for transfer_type in (DEPOSIT, WITHDRAWAL):
            rule = resolve_rule(2, receiver_tier, transfer_type, forced=True)
            assert rule.scope is MutationScope.RECEIVER_ONLY

    def test_forced_credit_pool_bridge_mutates_both(self):
        rule = resolve_rule(1, 2, DEPOSIT, forced=True)

        assert rule.scope is MutationScope.BOTH_SIDES
        assert rule.requires_channel is True

    def test_forced_kinds(self):
        assert resolve_rule(1, 3, DEPOSIT, forced=True).kind is TransactionKind.FORCED_DEPOSIT
        assert resolve_rule(3, 5, WITHDRAWAL, forced=True).kind is TransactionKind.FORCED_WITHDRAWAL


class TestRuleTableCoverage:
    @pytest.mark.parametrize("rules", [ORDINARY_RULES, FORCED_RULES])
    def test_every_downward_pair_has_exactly_one_rule(self, rules):
        for sender_tier in range(1, 8):
            for receiver_tier in range(sender_tier + 1, 8):
                for transfer_type in (DEPOSIT, WITHDRAWAL):
                    matches = [
                        r for r in rules
                        if r.matches(sender_tier, receiver_tier, transfer_type)
                    ]
                    assert len(matches) == 1, (sender_tier, receiver_tier, transfer_type)
