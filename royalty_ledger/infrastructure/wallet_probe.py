"""
Wallet discovery. Looks for an injected wallet provider in the host
environment, with bounded retry, and wraps what it finds in a validated
WalletCapability.

The environment lookup in `WalletProbe._lookup` is the only place that reads
the host globals; every other component receives the capability explicitly.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from royalty_ledger.utils.logger import get_logger

logger = get_logger()

PRIMARY_NAMESPACE = ("freighter",)
LEGACY_NAMESPACE = ("stellar", "freighter")

# operation -> accepted attribute names on the provider object
_OPERATIONS: dict[str, tuple[str, ...]] = {
    "is_connected": ("isConnected", "is_connected"),
    "connect": ("connect",),
    "get_public_key": ("getPublicKey", "get_public_key"),
}

Environment = Mapping[str, Any] | Callable[[], Mapping[str, Any]]


def _member(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _resolve_path(env: Mapping[str, Any], path: tuple[str, ...]) -> Any:
    obj: Any = env
    for name in path:
        obj = _member(obj, name)
        if obj is None:
            return None
    return obj


async def _call(fn: Callable[[], Any]) -> Any:
    result = fn()
    if inspect.isawaitable(result):
        result = await result
    return result


@dataclass(frozen=True)
class WalletCapability:
    """
    Validated handle to a wallet provider.

    Each operation is the bound callable found on the provider, or None when
    the provider does not expose it.
    """
    source: str
    is_connected: Callable[[], Any] | None = None
    connect: Callable[[], Any] | None = None
    get_public_key: Callable[[], Any] | None = None

    @classmethod
    def from_provider(cls, provider: Any, source: str) -> "WalletCapability":
        ops: dict[str, Callable[[], Any] | None] = {}
        for op, names in _OPERATIONS.items():
            fn = None
            for name in names:
                candidate = _member(provider, name)
                if callable(candidate):
                    fn = candidate
                    break
            ops[op] = fn
        return cls(source=source, **ops)

    def missing(self) -> list[str]:
        return [op for op in _OPERATIONS if getattr(self, op) is None]

    async def check_connected(self) -> bool:
        if self.is_connected is None:
            raise AttributeError("provider has no is_connected operation")
        return bool(await _call(self.is_connected))

    async def request_connect(self) -> None:
        if self.connect is None:
            raise AttributeError("provider has no connect operation")
        await _call(self.connect)

    async def fetch_public_key(self) -> Any:
        if self.get_public_key is None:
            raise AttributeError("provider has no get_public_key operation")
        return await _call(self.get_public_key)


@dataclass(frozen=True)
class DetectionAttempt:
    attempt: int
    capability: WalletCapability | None
    final: bool

    @property
    def found(self) -> bool:
        return self.capability is not None


@dataclass(frozen=True)
class DetectionResult:
    """Terminal probe outcome: Found(capability) or NotFound."""
    capability: WalletCapability | None
    attempts: int

    @property
    def found(self) -> bool:
        return self.capability is not None


class WalletProbe:
    """
    Bounded-retry wallet detector.

    NotFound is not an error: callers fall back to read-only/mock mode and only
    surface ProviderUnavailable when an account-scoped action is attempted.
    """

    def __init__(
        self,
        environment: Environment | None = None,
        max_attempts: int = 10,
        interval_ms: int = 1000,
    ) -> None:
        self._environment = environment
        self.max_attempts = max(1, int(max_attempts))
        self.interval_ms = max(0, int(interval_ms))
        self._cancelled = False
        self._sleeper: asyncio.Future[Any] | None = None
        self.last_result: DetectionResult | None = None

    def _env(self) -> Mapping[str, Any]:
        env = self._environment
        if env is None:
            return {}
        if callable(env) and not isinstance(env, Mapping):
            env = env()
        return env or {}

    def _lookup(self) -> WalletCapability | None:
        """Single read of the host environment."""
        try:
            env = self._env()
        except Exception as e:
            logger.warning("Wallet environment lookup failed: %s", e)
            return None
        for path in (PRIMARY_NAMESPACE, LEGACY_NAMESPACE):
            provider = _resolve_path(env, path)
            if provider is None:
                continue
            capability = WalletCapability.from_provider(provider, ".".join(path))
            if capability.is_connected is not None:
                return capability
        return None

    def current(self) -> WalletCapability | None:
        """Re-read the environment now, without retrying."""
        return self._lookup()

    def cancel(self) -> None:
        """Stop a running probe; it terminates with NotFound."""
        self._cancelled = True
        if self._sleeper is not None:
            self._sleeper.cancel()

    async def _pause(self, seconds: float) -> None:
        self._sleeper = asyncio.ensure_future(asyncio.sleep(seconds))
        try:
            await self._sleeper
        except asyncio.CancelledError:
            if not self._cancelled:
                raise
        finally:
            self._sleeper = None

    async def detect(
        self,
        max_attempts: int | None = None,
        interval_ms: int | None = None,
    ) -> AsyncIterator[DetectionAttempt]:
        """
        Yield one DetectionAttempt per probe. The last one has final=True and
        carries the capability if found.
        """
        attempts = max(1, int(max_attempts if max_attempts is not None else self.max_attempts))
        interval = max(0, int(interval_ms if interval_ms is not None else self.interval_ms)) / 1000
        for n in range(1, attempts + 1):
            if self._cancelled:
                logger.debug("Wallet probe cancelled at attempt %d", n)
                yield DetectionAttempt(n, None, True)
                return
            capability = self._lookup()
            if capability is not None:
                logger.debug("Wallet probe attempt %d: found %s", n, capability.source)
                yield DetectionAttempt(n, capability, True)
                return
            final = n == attempts
            logger.debug("Wallet probe attempt %d/%d: nothing yet", n, attempts)
            yield DetectionAttempt(n, None, final)
            if not final:
                await self._pause(interval)

    async def run(
        self,
        max_attempts: int | None = None,
        interval_ms: int | None = None,
    ) -> DetectionResult:
        """Probe until found or attempts are exhausted."""
        self._cancelled = False
        last = DetectionAttempt(0, None, True)
        async for last in self.detect(max_attempts, interval_ms):
            pass
        result = DetectionResult(last.capability, last.attempt)
        self.last_result = result
        if result.found:
            logger.info("Wallet provider detected via %s", result.capability.source)
        else:
            logger.warning("No wallet provider detected after %d attempt(s); using offline mode", result.attempts)
        return result
