"""Balance event polling for admin console sessions.

Each console session gets one Redis subscription, registered in the app's
``SessionRegistry`` and closed on logout or at shutdown.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from redis.asyncio import Redis

from partner_wallet.api.deps import verify_api_key
from partner_wallet.config import get_settings
from partner_wallet.services.events import BalanceEventSubscription
from partner_wallet.sessions import SessionRegistry
from partner_wallet.utils.redis_client import get_redis

router = APIRouter(
    prefix="/admin/events",
    tags=["Admin Events"],
    dependencies=[Depends(verify_api_key)],
)


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


Registry = Annotated[SessionRegistry, Depends(get_session_registry)]


async def _subscription(
    registry: SessionRegistry,
    session_id: str,
    redis: Redis,
) -> BalanceEventSubscription:
    def is_open_subscription(resource) -> bool:
        return isinstance(resource, BalanceEventSubscription) and not resource.closed

    async def subscribe() -> BalanceEventSubscription:
        return await BalanceEventSubscription(
            redis, get_settings().balance_event_channel
        ).start()

    return await registry.get_or_register(session_id, is_open_subscription, subscribe)


@router.get(
    "/{session_id}/next",
    summary="잔액 변경 이벤트 수신",
    description="콘솔 세션의 다음 partner_balance_updated 이벤트를 기다립니다.",
)
async def next_balance_event(
    session_id: str,
    registry: Registry,
    redis: Annotated[Redis | None, Depends(get_redis)],
    timeout: float = Query(1.0, ge=0, le=30),
):
    if redis is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": {
                    "code": "EVENTS_DISABLED",
                    "message": "Balance events require Redis",
                }
            },
        )

    subscription = await _subscription(registry, session_id, redis)
    return {"event": await subscription.next_message(timeout=timeout)}


@router.delete(
    "/{session_id}",
    summary="콘솔 세션 종료",
)
async def close_session(session_id: str, registry: Registry):
    return {"closed": await registry.close(session_id)}
