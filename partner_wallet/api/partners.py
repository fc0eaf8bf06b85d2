"""Partner wallet and history API (admin console)."""

from fastapi import APIRouter, Depends, Query

from partner_wallet.api.deps import DbSession, TransferServiceDep, verify_api_key
from partner_wallet.schemas.transfer import (
    BalanceLogListResponse,
    BalanceLogResponse,
    ChannelBalance,
    DescendantListResponse,
    PartnerNodeResponse,
    WalletResponse,
)
from partner_wallet.services.balance_log import BalanceLogWriter
from partner_wallet.services.directory import PartnerDirectory
from partner_wallet.services.wallet import ChannelConfig, WalletSnapshot, readable_balances

router = APIRouter(
    prefix="/admin/partners",
    tags=["Admin Partners"],
    dependencies=[Depends(verify_api_key)],
)


def _wallet_response(snapshot: WalletSnapshot, config: ChannelConfig) -> WalletResponse:
    return WalletResponse(
        partner_id=snapshot.partner_id,
        tier=snapshot.tier,
        kind=snapshot.kind.value,
        ledger_balance=snapshot.ledger_balance,
        channels=dict(snapshot.channels),
        balances=[
            ChannelBalance(channel=channel, amount=amount)
            for channel, amount in readable_balances(snapshot, config)
        ],
    )


@router.get(
    "/{partner_id}/wallet",
    response_model=WalletResponse,
    summary="지갑 조회",
)
async def get_wallet(partner_id: str, service: TransferServiceDep):
    snapshot = await service.snapshot_wallet(partner_id)
    return _wallet_response(snapshot, service.config)


@router.get(
    "/{partner_id}/balance-logs",
    response_model=BalanceLogListResponse,
    summary="잔액 변경 내역",
)
async def list_balance_logs(
    partner_id: str,
    db: DbSession,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    await PartnerDirectory(db).get(partner_id)
    records, total = await BalanceLogWriter(db).history(partner_id, limit=limit, offset=offset)
    return BalanceLogListResponse(
        items=[BalanceLogResponse.model_validate(r) for r in records],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{partner_id}/descendants",
    response_model=DescendantListResponse,
    summary="하위 파트너 목록",
)
async def list_descendants(partner_id: str, service: TransferServiceDep):
    directory = service.directory
    await directory.get(partner_id)
    nodes = await directory.descendants_of(partner_id)
    return DescendantListResponse(
        items=[
            PartnerNodeResponse(
                id=node.id,
                tier=node.tier,
                parent_id=node.parent_id,
                kind=node.kind,
                status=node.status,
                nickname=node.nickname,
                wallet=_wallet_response(node.wallet, service.config),
            )
            for node in nodes
        ],
        total=len(nodes),
    )
