"""Balance transfer API (admin console)."""

from fastapi import APIRouter, Depends, status

from partner_wallet.api.deps import (
    ActingPartnerId,
    TransferServiceDep,
    verify_api_key,
)
from partner_wallet.schemas.transfer import (
    ForcedTransferCreateRequest,
    TransferCreateRequest,
    TransferResponse,
)
from partner_wallet.services.transfer import TransferRequest

router = APIRouter(
    prefix="/admin/transfers",
    tags=["Admin Transfers"],
    dependencies=[Depends(verify_api_key)],
)


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="입출금 실행",
    description="상위 파트너가 하위 파트너에게 입금하거나 하위 파트너로부터 회수합니다.",
    responses={
        400: {"description": "Validation failed (no balance changed)"},
        404: {"description": "Partner not found"},
        409: {"description": "Concurrent modification or partial failure"},
    },
)
async def create_transfer(
    data: TransferCreateRequest,
    acting_partner_id: ActingPartnerId,
    service: TransferServiceDep,
):
    result = await service.transfer(
        TransferRequest(
            sender_id=acting_partner_id,
            receiver_id=data.target_id,
            transfer_type=data.transfer_type,
            amount=data.amount,
            memo=data.memo,
            channel=data.channel,
        )
    )
    return TransferResponse.model_validate(result)


@router.post(
    "/forced",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="강제 입출금",
    description=(
        "관리자 강제 입출금. 소유 관계/상태 검사를 생략하며 "
        "외부 API 호출 없이 내부 잔액만 변경합니다."
    ),
    responses={
        400: {"description": "Validation failed (no balance changed)"},
        403: {"description": "Admin cannot act for the sender"},
        404: {"description": "Partner not found"},
        409: {"description": "Concurrent modification or partial failure"},
    },
)
async def create_forced_transfer(
    data: ForcedTransferCreateRequest,
    acting_partner_id: ActingPartnerId,
    service: TransferServiceDep,
):
    result = await service.forced_transfer(
        acting_partner_id,
        TransferRequest(
            sender_id=data.sender_id or acting_partner_id,
            receiver_id=data.target_id,
            transfer_type=data.transfer_type,
            amount=data.amount,
            memo=data.memo,
            channel=data.channel,
        ),
    )
    return TransferResponse.model_validate(result)
