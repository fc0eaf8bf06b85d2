"""Partner directory: read-only view of the partner tree.

Reads are column selects, so results never come from a stale identity map
after the transfer service's guarded UPDATEs. Tree traversals run as a single
recursive CTE instead of one query per level.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from partner_wallet.models.partner import (
    Partner,
    PartnerKind,
    PartnerStatus,
    WalletChannelBalance,
)
from partner_wallet.services.wallet import WalletSnapshot
from partner_wallet.utils.errors import PartnerNotFoundError


@dataclass(frozen=True)
class PartnerNode:
    """A partner together with its current wallet snapshot."""

    id: str
    tier: int
    parent_id: str | None
    kind: PartnerKind
    status: PartnerStatus
    nickname: str
    wallet: WalletSnapshot

    @property
    def is_active(self) -> bool:
        return self.status == PartnerStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tier": self.tier,
            "parentId": self.parent_id,
            "kind": self.kind.value,
            "status": self.status.value,
            "nickname": self.nickname,
            "wallet": self.wallet.to_dict(),
        }


_PARTNER_COLUMNS = (
    Partner.id,
    Partner.tier,
    Partner.parent_id,
    Partner.kind,
    Partner.status,
    Partner.nickname,
    Partner.ledger_balance,
)


class PartnerDirectory:
    """Partner lookups and tree traversal."""

    def __init__(self, session: AsyncSession):
        self.db = session

    async def _channel_balances(self, partner_ids: Iterable[str]) -> dict[str, dict[str, int]]:
        ids = list(partner_ids)
        balances: dict[str, dict[str, int]] = defaultdict(dict)
        if not ids:
            return balances

        result = await self.db.execute(
            select(
                WalletChannelBalance.partner_id,
                WalletChannelBalance.channel,
                WalletChannelBalance.balance,
            ).where(WalletChannelBalance.partner_id.in_(ids))
        )
        for partner_id, channel, balance in result.all():
            balances[partner_id][channel] = balance
        return balances

    async def _nodes(self, rows) -> list[PartnerNode]:
        rows = list(rows)
        channels = await self._channel_balances(row.id for row in rows if row.tier <= 2)
        return [
            PartnerNode(
                id=row.id,
                tier=row.tier,
                parent_id=row.parent_id,
                kind=row.kind,
                status=row.status,
                nickname=row.nickname,
                wallet=WalletSnapshot(
                    partner_id=row.id,
                    tier=row.tier,
                    ledger_balance=row.ledger_balance,
                    channels=channels.get(row.id, {}),
                ),
            )
            for row in rows
        ]

    async def get(self, partner_id: str) -> PartnerNode:
        """Get a partner with its wallet snapshot.

        Raises:
            PartnerNotFoundError: If the partner does not exist
        """
        result = await self.db.execute(
            select(*_PARTNER_COLUMNS).where(Partner.id == partner_id)
        )
        row = result.one_or_none()
        if row is None:
            raise PartnerNotFoundError(partner_id)
        return (await self._nodes([row]))[0]

    async def get_many(self, partner_ids: Iterable[str]) -> dict[str, PartnerNode]:
        """Get several partners in one round-trip.

        Raises:
            PartnerNotFoundError: For the first requested id that does not exist
        """
        ids = list(dict.fromkeys(partner_ids))
        result = await self.db.execute(
            select(*_PARTNER_COLUMNS).where(Partner.id.in_(ids))
        )
        nodes = {node.id: node for node in await self._nodes(result.all())}
        for partner_id in ids:
            if partner_id not in nodes:
                raise PartnerNotFoundError(partner_id)
        return nodes

    async def descendants_of(self, partner_id: str) -> list[PartnerNode]:
        """Transitive closure below a partner, shallowest tiers first."""
        subtree = (
            select(Partner.id)
            .where(Partner.parent_id == partner_id)
            .cte(name="subtree", recursive=True)
        )
        child = aliased(Partner)
        subtree = subtree.union_all(
            select(child.id).where(child.parent_id == subtree.c.id)
        )

        result = await self.db.execute(
            select(*_PARTNER_COLUMNS)
            .join(subtree, Partner.id == subtree.c.id)
            .order_by(Partner.tier, Partner.nickname)
        )
        return await self._nodes(result.all())

    async def _ancestor_ids(self, partner_id: str) -> list[str]:
        chain = (
            select(Partner.id, Partner.parent_id, Partner.tier)
            .where(Partner.id == partner_id)
            .cte(name="chain", recursive=True)
        )
        parent = aliased(Partner)
        chain = chain.union_all(
            select(parent.id, parent.parent_id, parent.tier).where(
                parent.id == chain.c.parent_id
            )
        )

        result = await self.db.execute(select(chain.c.id).order_by(chain.c.tier))
        return list(result.scalars().all())

    async def ancestor_chain(self, partner_id: str) -> list[PartnerNode]:
        """Root-to-self path of a partner.

        Raises:
            PartnerNotFoundError: If the partner does not exist
        """
        ids = await self._ancestor_ids(partner_id)
        if not ids:
            raise PartnerNotFoundError(partner_id)

        result = await self.db.execute(
            select(*_PARTNER_COLUMNS)
            .where(Partner.id.in_(ids))
            .order_by(Partner.tier)
        )
        return await self._nodes(result.all())

    async def is_descendant(self, ancestor_id: str, partner_id: str) -> bool:
        """Whether ``partner_id`` sits strictly below ``ancestor_id``."""
        if ancestor_id == partner_id:
            return False
        return ancestor_id in await self._ancestor_ids(partner_id)
