"""
Per-tab tenant navigation state.

Each navigation targets one domain. Starting a new navigation cancels the
in-flight resolution of the previous target and bumps a generation counter;
a result that comes back for an older generation is discarded, so a slow
lookup can never overwrite the state of a newer target.
"""

import asyncio

from opsportal.core.exceptions import TenantResolutionError
from opsportal.core.logging_config import get_logger
from opsportal.core.metrics import tenant_resolutions_total
from opsportal.features.tenants.resolver import TenantResolver, normalize_domain
from opsportal.schemas.tenant import TenantResolution, TenantState

logger = get_logger(__name__)


class TenantNavigator:
    """Tracks the current navigation target of one tab and its resolution."""

    def __init__(self, resolver: TenantResolver) -> None:
        self._resolver = resolver
        self._state = TenantState()
        self._generation = 0
        self._task: asyncio.Task[TenantResolution | None] | None = None

    @property
    def state(self) -> TenantState:
        return self._state

    @property
    def current_tenant(self) -> TenantResolution | None:
        return self._state.tenant

    async def navigate(self, domain: str) -> TenantState:
        """
        Point the navigator at ``domain`` and resolve it.

        The cached entry of the previous target is dropped when the target
        changes.
        """
        target = normalize_domain(domain)
        previous = self._state.domain
        if previous and previous != target:
            await self._resolver.invalidate(previous)
        return await self._run(target, refresh=False)

    async def refetch(self) -> TenantState:
        """Re-resolve the current target, bypassing the cache."""
        if not self._state.domain:
            return self._state
        return await self._run(self._state.domain, refresh=True)

    async def _run(self, target: str, refresh: bool) -> TenantState:
        self._generation += 1
        generation = self._generation

        if self._task is not None and not self._task.done():
            self._task.cancel()

        self._state = TenantState(domain=target, loading=True)

        if refresh:
            coro = self._resolver.refetch(target)
        else:
            coro = self._resolver.resolve_by_domain(target)
        task = asyncio.create_task(coro)
        self._task = task

        try:
            tenant = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                return self._discard(target)
            raise
        except TenantResolutionError as e:
            if generation != self._generation:
                return self._discard(target)
            logger.warning("tenant_navigation_failed", domain=target, error=e.message)
            self._state = TenantState(domain=target, error=e.message)
            return self._state

        if generation != self._generation:
            return self._discard(target)

        self._state = TenantState(domain=target, tenant=tenant)
        return self._state

    def _discard(self, target: str) -> TenantState:
        tenant_resolutions_total.labels(outcome="discarded").inc()
        logger.debug("stale_tenant_resolution_discarded", domain=target, current=self._state.domain)
        return self._state
