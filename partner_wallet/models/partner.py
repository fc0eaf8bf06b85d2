"""Partner hierarchy and wallet balance models.

파트너 계층:
- Lv1 system_admin (운영사) : credit pool, one row per funding channel
- Lv2 head_office (본사)    : two channel balances + dormant ledger balance
- Lv3~Lv7                   : single ledger balance
"""

from enum import Enum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Enum as SQLEnum,
    ForeignKey,
    SmallInteger,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from partner_wallet.models.base import Base, TimestampMixin, UUIDMixin

ROOT_TIER = 1
HEAD_OFFICE_TIER = 2
LEAF_TIER = 7


class PartnerKind(str, Enum):
    """Partner role; one kind per tier."""

    SYSTEM_ADMIN = "system_admin"
    HEAD_OFFICE = "head_office"
    MAIN_OFFICE = "main_office"
    SUB_OFFICE = "sub_office"
    DISTRIBUTOR = "distributor"
    STORE = "store"
    END_USER = "end_user"

    @property
    def tier(self) -> int:
        return list(PartnerKind).index(self) + 1

    @classmethod
    def for_tier(cls, tier: int) -> "PartnerKind":
        if not ROOT_TIER <= tier <= LEAF_TIER:
            raise ValueError(f"Tier out of range: {tier}")
        return list(cls)[tier - 1]


class PartnerStatus(str, Enum):
    """Partner account status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"


class Partner(Base, UUIDMixin, TimestampMixin):
    """A node of the partner tree.

    Balance columns are written only by the transfer service, always through
    a single guarded UPDATE statement.
    """

    __tablename__ = "partners"

    tier: Mapped[int] = mapped_column(
        SmallInteger,
        nullable=False,
        index=True,
        comment="1 = system admin ... 7 = end user",
    )
    parent_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("partners.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    kind: Mapped[PartnerKind] = mapped_column(
        SQLEnum(
            PartnerKind,
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
    )
    status: Mapped[PartnerStatus] = mapped_column(
        SQLEnum(
            PartnerStatus,
            values_callable=lambda obj: [e.value for e in obj],
        ),
        default=PartnerStatus.ACTIVE,
        nullable=False,
    )
    nickname: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    ledger_balance: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
        comment="보유금 (Lv3~Lv7); always zero on Lv1/Lv2",
    )

    __table_args__ = (
        CheckConstraint("tier BETWEEN 1 AND 7", name="ck_partners_tier_range"),
        CheckConstraint("ledger_balance >= 0", name="ck_partners_ledger_non_negative"),
        CheckConstraint(
            "(tier = 1 AND parent_id IS NULL) OR (tier > 1 AND parent_id IS NOT NULL)",
            name="ck_partners_root_parent",
        ),
    )

    def __repr__(self) -> str:
        return f"<Partner {self.nickname} lv{self.tier}>"


class WalletChannelBalance(Base, UUIDMixin, TimestampMixin):
    """Channel-scoped balance of a Lv1 credit pool or a Lv2 wallet."""

    __tablename__ = "wallet_channel_balances"

    partner_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("partners.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    channel: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Funding channel identifier (e.g. invest, oroplay)",
    )
    balance: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("partner_id", "channel", name="uq_wallet_channel_partner_channel"),
        CheckConstraint("balance >= 0", name="ck_wallet_channel_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<WalletChannelBalance {self.channel}={self.balance}>"
