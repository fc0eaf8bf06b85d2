"""Console session registry.

Per-session resources (event subscriptions and the like) are registered
under the console session id and closed explicitly, either one session at a
time or all at shutdown. The registry is owned by whoever creates it; there
is no module-level instance.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

from partner_wallet.logging_config import get_logger

logger = get_logger(__name__)


class Closable(Protocol):
    async def close(self) -> None: ...


T = TypeVar("T", bound=Closable)


class SessionRegistry:
    """Resources keyed by console session id."""

    def __init__(self) -> None:
        self._resources: dict[str, list[Closable]] = {}
        self._lock = asyncio.Lock()

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._resources

    def __len__(self) -> int:
        return len(self._resources)

    async def register(self, session_id: str, resource: Closable) -> None:
        async with self._lock:
            self._resources.setdefault(session_id, []).append(resource)

    async def get_or_register(
        self,
        session_id: str,
        matches: Callable[[Closable], bool],
        factory: Callable[[], Awaitable[T]],
    ) -> T:
        """Return the first resource of a session accepted by ``matches``.

        Otherwise create one with ``factory`` and register it. Lookup and
        registration happen under the registry lock, so concurrent callers for
        the same session share one resource.
        """
        async with self._lock:
            for existing in self._resources.get(session_id, []):
                if matches(existing):
                    return existing
            resource = await factory()
            self._resources.setdefault(session_id, []).append(resource)
            return resource

    def resources(self, session_id: str) -> list[Closable]:
        return list(self._resources.get(session_id, []))

    async def close(self, session_id: str) -> int:
        """Close and forget every resource of one session.

        Returns:
            Number of resources closed
        """
        async with self._lock:
            resources = self._resources.pop(session_id, [])

        closed = 0
        for resource in reversed(resources):
            try:
                await resource.close()
                closed += 1
            except Exception as e:
                logger.warning(
                    "session_resource_close_failed",
                    session_id=session_id,
                    resource=type(resource).__name__,
                    error=str(e),
                )
        if resources:
            logger.debug("session_closed", session_id=session_id, closed=closed)
        return closed

    async def close_all(self) -> int:
        """Close every registered session."""
        closed = 0
        for session_id in list(self._resources):
            closed += await self.close(session_id)
        return closed
