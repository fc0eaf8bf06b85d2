"""Tier-dependent wallet model.

A wallet is a view over a partner's balance columns:

- Lv1: credit pool, one balance per funding channel (open-ended set)
- Lv2: dual channel, exactly the configured channels, plus a dormant ledger
- Lv3~Lv7: single ledger balance

All functions here are pure; persisting a new balance is the transfer
service's job.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

from partner_wallet.models.partner import HEAD_OFFICE_TIER, LEAF_TIER, ROOT_TIER
from partner_wallet.utils.errors import ChannelRequiredError, WouldGoNegativeError

if TYPE_CHECKING:
    from partner_wallet.config import Settings


class WalletKind(str, Enum):
    """Wallet representation per tier."""

    CREDIT_POOL = "credit_pool"
    DUAL_CHANNEL = "dual_channel"
    SINGLE_LEDGER = "single_ledger"


def wallet_kind_for(tier: int) -> WalletKind:
    """Wallet representation used by a tier."""
    if not ROOT_TIER <= tier <= LEAF_TIER:
        raise ValueError(f"Tier out of range: {tier}")
    if tier == ROOT_TIER:
        return WalletKind.CREDIT_POOL
    if tier == HEAD_OFFICE_TIER:
        return WalletKind.DUAL_CHANNEL
    return WalletKind.SINGLE_LEDGER


@dataclass(frozen=True)
class ChannelConfig:
    """Configured funding channels and which of them are enabled."""

    channels: tuple[str, ...]
    enabled: tuple[str, ...]

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ChannelConfig":
        return cls(
            channels=tuple(settings.wallet_channels),
            enabled=tuple(settings.active_channels),
        )


@dataclass(frozen=True)
class WalletSnapshot:
    """Point-in-time balances of one partner."""

    partner_id: str
    tier: int
    ledger_balance: int = 0
    channels: Mapping[str, int] = field(default_factory=dict)

    @property
    def kind(self) -> WalletKind:
        return wallet_kind_for(self.tier)

    def balance_of(self, channel: str) -> int:
        return self.channels.get(channel, 0)

    def to_dict(self) -> dict:
        return {
            "partnerId": self.partner_id,
            "tier": self.tier,
            "kind": self.kind.value,
            "ledgerBalance": self.ledger_balance,
            "channels": dict(self.channels),
        }


@dataclass(frozen=True)
class ResolvedBalance:
    """The balance field that governs an operation.

    ``channel`` is None for ledger balances, and also when no channel
    qualified (``amount`` is then 0).
    """

    channel: str | None
    amount: int


def _known_channels(snapshot: WalletSnapshot, config: ChannelConfig) -> list[str]:
    if snapshot.kind is WalletKind.DUAL_CHANNEL:
        return list(config.channels)
    # Credit pools may hold channels beyond the configured pair
    extra = [c for c in snapshot.channels if c not in config.channels]
    return list(config.channels) + sorted(extra)


def readable_balances(
    snapshot: WalletSnapshot,
    config: ChannelConfig,
) -> list[tuple[str | None, int]]:
    """Ordered (channel, amount) pairs shown for a wallet.

    Ledger entries use channel None.
    """
    kind = snapshot.kind
    if kind is WalletKind.SINGLE_LEDGER:
        return [(None, snapshot.ledger_balance)]

    balances: list[tuple[str | None, int]] = [
        (channel, snapshot.balance_of(channel))
        for channel in _known_channels(snapshot, config)
    ]
    if kind is WalletKind.DUAL_CHANNEL:
        balances.append((None, snapshot.ledger_balance))
    return balances


def authoritative_balance(
    snapshot: WalletSnapshot,
    config: ChannelConfig,
    channel: str | None = None,
) -> ResolvedBalance:
    """Resolve the balance field that governs an operation.

    - Ledger wallets: the ledger balance; a channel selector is an error.
    - Explicit channel: that channel's balance.
    - Credit pool without selector: minimum over enabled channels.
    - Dual channel without selector: minimum over enabled channels whose
      balance is non-zero.

    Ties resolve to the channel listed first in the configuration.
    """
    kind = snapshot.kind

    if kind is WalletKind.SINGLE_LEDGER:
        if channel is not None:
            raise ChannelRequiredError(channel, [])
        return ResolvedBalance(channel=None, amount=snapshot.ledger_balance)

    known = _known_channels(snapshot, config)
    if channel is not None:
        if channel not in known:
            raise ChannelRequiredError(channel, known)
        return ResolvedBalance(channel=channel, amount=snapshot.balance_of(channel))

    candidates = [c for c in known if c in config.enabled]
    if kind is WalletKind.DUAL_CHANNEL:
        candidates = [c for c in candidates if snapshot.balance_of(c) > 0]

    if not candidates:
        return ResolvedBalance(channel=None, amount=0)

    limiting = min(candidates, key=snapshot.balance_of)
    return ResolvedBalance(channel=limiting, amount=snapshot.balance_of(limiting))


def default_channel(snapshot: WalletSnapshot, config: ChannelConfig) -> str | None:
    """Channel credited when no selector is given (first enabled channel)."""
    if snapshot.kind is WalletKind.SINGLE_LEDGER:
        return None
    for channel in _known_channels(snapshot, config):
        if channel in config.enabled:
            return channel
    return None


def apply_delta(
    snapshot: WalletSnapshot,
    channel: str | None,
    signed_amount: int,
) -> WalletSnapshot:
    """Return a new snapshot with ``signed_amount`` applied.

    Raises:
        WouldGoNegativeError: If the resulting balance is below zero
        ChannelRequiredError: If the channel does not fit the wallet kind
    """
    kind = snapshot.kind

    if kind is WalletKind.SINGLE_LEDGER:
        if channel is not None:
            raise ChannelRequiredError(channel, [])
        new_balance = snapshot.ledger_balance + signed_amount
        if new_balance < 0:
            raise WouldGoNegativeError(
                snapshot.partner_id, None, snapshot.ledger_balance, signed_amount
            )
        return replace(snapshot, ledger_balance=new_balance)

    # Lv1 has no ledger and the Lv2 ledger stays dormant
    if channel is None:
        raise ChannelRequiredError(None, list(snapshot.channels))

    current = snapshot.balance_of(channel)
    new_balance = current + signed_amount
    if new_balance < 0:
        raise WouldGoNegativeError(snapshot.partner_id, channel, current, signed_amount)

    channels = dict(snapshot.channels)
    channels[channel] = new_balance
    return replace(snapshot, channels=channels)
