"""API dependencies."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from partner_wallet.config import get_settings
from partner_wallet.logging_config import get_logger
from partner_wallet.services.transfer import TransferService
from partner_wallet.utils.db import get_db
from partner_wallet.utils.redis_client import get_redis

logger = get_logger(__name__)


def verify_api_key(x_api_key: Annotated[str | None, Header()] = None) -> None:
    """Verify the internal API key of the admin console."""
    settings = get_settings()
    if x_api_key != settings.internal_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": {
                    "code": "UNAUTHORIZED",
                    "message": "Invalid API key",
                }
            },
        )


def get_acting_partner_id(
    x_acting_partner_id: Annotated[str | None, Header()] = None,
) -> str:
    """Partner on whose behalf the console acts."""
    if not x_acting_partner_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": {
                    "code": "INVALID_REQUEST",
                    "message": "X-Acting-Partner-Id header is required",
                }
            },
        )
    return x_acting_partner_id


async def get_transfer_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    redis: Annotated[Redis | None, Depends(get_redis)],
) -> TransferService:
    return TransferService(db, redis=redis)


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
ActingPartnerId = Annotated[str, Depends(get_acting_partner_id)]
TransferServiceDep = Annotated[TransferService, Depends(get_transfer_service)]
