"""Balance validation for proposed transfers.

Pure functions: given both wallets, decide whether a transfer may proceed and
which balance fields it will touch. Rejections raise ``TransferError``
subclasses whose details carry the limiting balance.
"""

import math
from dataclasses import dataclass
from decimal import Decimal
from numbers import Number

from partner_wallet.models.balance_log import TransferType
from partner_wallet.services.tier_rules import TierPairRule, resolve_rule
from partner_wallet.services.wallet import (
    ChannelConfig,
    WalletKind,
    WalletSnapshot,
    authoritative_balance,
    default_channel,
)
from partner_wallet.utils.errors import (
    ChannelRequiredError,
    InsufficientBalanceError,
    InsufficientChannelFundsError,
    InvalidAmountError,
    NoEnabledChannelsError,
)


@dataclass(frozen=True)
class TransferApproval:
    """Outcome of a successful validation.

    Attributes:
        rule: Tier-pair rule in force
        amount: Normalized integer amount
        sender_channel: Channel field of the sender to write (None = ledger)
        receiver_channel: Channel field of the receiver to write (None = ledger)
        limit: The balance the amount was checked against
    """

    rule: TierPairRule
    amount: int
    sender_channel: str | None
    receiver_channel: str | None
    limit: int


def normalize_amount(amount) -> int:
    """Validate and convert an amount to a positive integer.

    Raises:
        InvalidAmountError: For non-numeric, non-finite, fractional or
            non-positive amounts
    """
    if isinstance(amount, bool) or not isinstance(amount, (Number, Decimal)):
        raise InvalidAmountError(amount)
    if isinstance(amount, float) and not math.isfinite(amount):
        raise InvalidAmountError(amount)
    if isinstance(amount, Decimal) and not amount.is_finite():
        raise InvalidAmountError(str(amount))
    if amount <= 0 or amount != int(amount):
        raise InvalidAmountError(amount)
    return int(amount)


def _require_channel(channel: str | None, config: ChannelConfig) -> str:
    if channel is None or channel not in config.channels:
        raise ChannelRequiredError(channel, list(config.channels))
    return channel


def _check_ledger(wallet: WalletSnapshot, amount: int) -> int:
    if wallet.ledger_balance < amount:
        raise InsufficientBalanceError(wallet.partner_id, wallet.ledger_balance, amount)
    return wallet.ledger_balance


def _check_channel(wallet: WalletSnapshot, channel: str, amount: int) -> int:
    available = wallet.balance_of(channel)
    if available < amount:
        raise InsufficientChannelFundsError(wallet.partner_id, channel, available, amount)
    return available


def _has_enabled_channels(wallet: WalletSnapshot, config: ChannelConfig) -> bool:
    if wallet.kind is WalletKind.CREDIT_POOL:
        return bool(config.enabled)
    return any(c in config.enabled for c in config.channels)


def _validate_withdrawal(
    sender: WalletSnapshot,
    receiver: WalletSnapshot,
    rule: TierPairRule,
    amount: int,
    config: ChannelConfig,
    channel: str | None,
) -> TransferApproval:
    # Only the subordinate's balance limits a withdrawal
    if rule.requires_channel:
        selected = _require_channel(channel, config)
        limit = _check_channel(receiver, selected, amount)
        return TransferApproval(rule, amount, selected, selected, limit)

    # Lv2 subordinates are checked against the ledger field, never the channels
    limit = _check_ledger(receiver, amount)

    sender_channel = None
    if rule.scope.touches_sender and sender.kind is not WalletKind.SINGLE_LEDGER:
        if channel is not None:
            sender_channel = authoritative_balance(sender, config, channel).channel
        else:
            sender_channel = default_channel(sender, config)
            if sender_channel is None:
                raise NoEnabledChannelsError(sender.partner_id, amount)

    return TransferApproval(rule, amount, sender_channel, None, limit)


def _validate_deposit(
    sender: WalletSnapshot,
    receiver: WalletSnapshot,
    rule: TierPairRule,
    amount: int,
    config: ChannelConfig,
    channel: str | None,
) -> TransferApproval:
    if rule.requires_channel:
        selected = _require_channel(channel, config)
        limit = _check_channel(sender, selected, amount)
        return TransferApproval(rule, amount, selected, selected, limit)

    receiver_channel = None if receiver.kind is WalletKind.SINGLE_LEDGER else default_channel(receiver, config)

    if sender.kind is WalletKind.SINGLE_LEDGER:
        limit = _check_ledger(sender, amount)
        return TransferApproval(rule, amount, None, receiver_channel, limit)

    if sender.kind is WalletKind.DUAL_CHANNEL and channel is not None:
        resolved = authoritative_balance(sender, config, channel)
        _check_channel(sender, resolved.channel, amount)
        return TransferApproval(rule, amount, resolved.channel, receiver_channel, resolved.amount)

    # Minimum-channel credit limit: coverable whichever channel settles it
    if not _has_enabled_channels(sender, config):
        raise NoEnabledChannelsError(sender.partner_id, amount)
    if sender.kind is WalletKind.CREDIT_POOL and not any(
        sender.balance_of(c) for c in config.enabled
    ):
        # Jointly empty pool counts as no usable channel
        raise NoEnabledChannelsError(sender.partner_id, amount)

    resolved = authoritative_balance(sender, config)
    if resolved.channel is None or resolved.amount < amount:
        raise InsufficientChannelFundsError(
            sender.partner_id, resolved.channel, resolved.amount, amount
        )
    return TransferApproval(rule, amount, resolved.channel, receiver_channel, resolved.amount)


def validate_transfer(
    sender: WalletSnapshot,
    receiver: WalletSnapshot,
    transfer_type: TransferType,
    amount,
    config: ChannelConfig,
    channel: str | None = None,
    forced: bool = False,
) -> TransferApproval:
    """Decide whether a transfer is permissible.

    Args:
        sender: Wallet of the acting (upper) partner
        receiver: Wallet of the target (lower) partner
        transfer_type: Deposit (sender -> receiver) or withdrawal (receiver -> sender)
        amount: Requested amount
        config: Channel configuration
        channel: Optional channel selector
        forced: Use the forced-transfer rule table

    Returns:
        TransferApproval describing the fields to write

    Raises:
        TransferError: On any rejection; nothing has been written
    """
    normalized = normalize_amount(amount)
    rule = resolve_rule(sender.tier, receiver.tier, transfer_type, forced=forced)

    if transfer_type is TransferType.WITHDRAWAL:
        return _validate_withdrawal(sender, receiver, rule, normalized, config, channel)
    return _validate_deposit(sender, receiver, rule, normalized, config, channel)
