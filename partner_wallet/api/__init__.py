"""API routers."""

from partner_wallet.api.events import router as events_router
from partner_wallet.api.partners import router as partners_router
from partner_wallet.api.transfers import router as transfers_router

__all__ = ["events_router", "partners_router", "transfers_router"]
