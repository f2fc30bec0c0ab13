"""
Lifecycle of the ledger RPC connection: build the client, health-check it and
degrade to offline. Independent of wallet state.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from royalty_ledger.domains.errors import SdkUnavailableError
from royalty_ledger.domains.models import ConnectionState
from royalty_ledger.infrastructure.rpc_client import LedgerRpcClient
from royalty_ledger.utils.logger import get_logger

logger = get_logger()

RpcFactory = Callable[[], LedgerRpcClient]
HealthProbe = Callable[[], Awaitable[Any]]

_ALLOWED: set[tuple[ConnectionState, ConnectionState]] = {
    (ConnectionState.CONNECTING, ConnectionState.LIVE),
    (ConnectionState.CONNECTING, ConnectionState.OFFLINE),
    (ConnectionState.LIVE, ConnectionState.OFFLINE),
    (ConnectionState.OFFLINE, ConnectionState.LIVE),
}


class ConnectionManager:
    """
    Owns ConnectionState.

    initialize() retries RPC client construction every `init_interval_ms`
    while the factory raises SdkUnavailableError, for at most
    `init_timeout_ms`, then settles on offline. Offline is sticky until an
    explicit health_check() succeeds.
    """

    def __init__(
        self,
        rpc_factory: RpcFactory,
        init_interval_ms: int = 1000,
        init_timeout_ms: int = 30000,
        health_timeout: float | None = 10.0,
        probe: HealthProbe | None = None,
    ) -> None:
        self._rpc_factory = rpc_factory
        self.init_interval_ms = max(0, int(init_interval_ms))
        self.init_timeout_ms = max(0, int(init_timeout_ms))
        self.health_timeout = health_timeout
        self.probe = probe
        self._state = ConnectionState.CONNECTING
        self._rpc: LedgerRpcClient | None = None
        self._task: asyncio.Task[ConnectionState] | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def rpc(self) -> LedgerRpcClient | None:
        return self._rpc

    @property
    def is_live(self) -> bool:
        return self._state is ConnectionState.LIVE and self._rpc is not None

    def _transition(self, new: ConnectionState, reason: str = "") -> None:
        old = self._state
        if old is new:
            return
        if (old, new) not in _ALLOWED:
            logger.debug("Ignoring connection transition %s -> %s", old.value, new.value)
            return
        self._state = new
        if new is ConnectionState.OFFLINE:
            logger.warning("Ledger connection %s -> %s: %s", old.value, new.value, reason or "no reason given")
        else:
            logger.info("Ledger connection %s -> %s", old.value, new.value)

    def mark_offline(self, reason: str) -> None:
        """Record a failed live call."""
        self._transition(ConnectionState.OFFLINE, reason)

    def _try_build(self) -> bool:
        """One construction attempt. Raises SdkUnavailableError to ask for a retry."""
        try:
            self._rpc = self._rpc_factory()
        except SdkUnavailableError:
            raise
        except Exception as e:
            logger.error("Failed to initialize ledger RPC client: %s", e)
            return False
        logger.info("Ledger RPC client initialized for %s", getattr(self._rpc, "base_url", "?"))
        return True

    async def _build_with_retry(self) -> bool:
        deadline = time.monotonic() + self.init_timeout_ms / 1000
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._try_build()
            except SdkUnavailableError as e:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.error(
                        "Ledger RPC client still unavailable after %d attempt(s) (%d ms budget): %s",
                        attempt, self.init_timeout_ms, e,
                    )
                    return False
                logger.warning("Ledger SDK not ready (attempt %d), retrying in %d ms", attempt, self.init_interval_ms)
                await asyncio.sleep(min(self.init_interval_ms / 1000, remaining))

    async def initialize(self) -> ConnectionState:
        """Build the RPC client (bounded retry), then health-check it."""
        if self._rpc is None and not await self._build_with_retry():
            self._transition(ConnectionState.OFFLINE, "RPC client could not be initialized")
            return self._state
        return await self.health_check()

    async def health_check(self) -> ConnectionState:
        """One read-only remote call. Success -> live, any failure -> offline."""
        if self._rpc is None:
            try:
                built = self._try_build()
            except SdkUnavailableError as e:
                logger.warning("Health check skipped, ledger SDK not ready: %s", e)
                built = False
            if not built:
                self._transition(ConnectionState.OFFLINE, "RPC client not initialized")
                return self._state

        rpc = self._rpc
        try:
            if self.probe is not None:
                call = self.probe()
            else:
                call = asyncio.to_thread(rpc.get_health)
            await asyncio.wait_for(call, timeout=self.health_timeout)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._transition(ConnectionState.OFFLINE, f"health check failed: {type(e).__name__}: {e}")
            return self._state
        self._transition(ConnectionState.LIVE)
        return self._state

    def start(self) -> asyncio.Task[ConnectionState]:
        """Schedule initialize() in the background; requires a running loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.initialize())
        return self._task

    async def wait_ready(self) -> ConnectionState:
        """Await a start()ed initialization, if any, and return the state."""
        if self._task is not None and not self._task.cancelled():
            return await self._task
        return self._state

    async def close(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        if self._rpc is not None:
            self._rpc.close()
            self._rpc = None
