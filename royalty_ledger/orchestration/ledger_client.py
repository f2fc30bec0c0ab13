"""
LedgerClient: the facade the view layer talks to.

Every domain operation goes through `ledger_operation`, which applies one
policy: validate input, gate account-scoped calls on a session, try the live
RPC path when the connection is live, and otherwise (or on any live failure)
serve the MockLedger answer. Callers only ever see a result value,
ValidationError or ConnectError; which path served a call goes to the log.
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable
from typing import Any

from royalty_ledger.domains.errors import (
    AccountNotFoundError,
    ConnectError,
    RemoteCallFailure,
    ValidationError,
)
from royalty_ledger.domains.models import (
    AccountInfo,
    ConnectionState,
    License,
    LicenseType,
    RoyaltyConfig,
    RoyaltyPayment,
    RoyaltyStats,
    Work,
    WorkType,
    from_basis_points,
    from_timestamp,
    to_basis_points,
    to_decimal,
)
from royalty_ledger.domains.validation import (
    validate_purchase_license,
    validate_register_work,
    validate_work_id,
)
from royalty_ledger.infrastructure.rpc_client import LedgerRpcClient
from royalty_ledger.infrastructure.wallet_probe import Environment, WalletProbe
from royalty_ledger.orchestration.connection_manager import ConnectionManager
from royalty_ledger.orchestration.mock_ledger import MockLedger
from royalty_ledger.orchestration.session import AccountSession, SessionHolder, connect_wallet
from royalty_ledger.utils.config import LedgerSettings
from royalty_ledger.utils.logger import get_logger, setup_logger

logger = get_logger()


def ledger_operation(
    *,
    account_scoped: bool = False,
    with_identity: bool = False,
    validate: Callable[..., None] | None = None,
    propagate: tuple[type[BaseException], ...] = (),
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Wrap a live implementation with the dual-path policy.

    The mock implementation is the MockLedger method of the same name.
    `with_identity` prepends the session public key to the arguments of both
    paths, so callers never pass it themselves. Exceptions in `propagate`
    skip the fallback and reach the caller.
    """

    def decorator(live: Callable[..., Any]) -> Callable[..., Any]:
        name = live.__name__

        @functools.wraps(live)
        async def wrapper(self: "LedgerClient", *args: Any, **kwargs: Any) -> Any:
            if validate is not None:
                validate(*args, **kwargs)
            session = self._sessions.current
            if account_scoped and session is None:
                session = self._sessions.require(provider_missing=self._provider_missing())
            call_args = (session.public_key, *args) if with_identity else args

            if self._connection.is_live:
                try:
                    result = await live(self, *call_args, **kwargs)
                except (ValidationError, ConnectError):
                    raise
                except propagate:
                    raise
                except Exception as e:
                    failure = e if isinstance(e, RemoteCallFailure) else RemoteCallFailure(
                        f"{name}: unexpected {type(e).__name__}: {e}", e
                    )
                    logger.warning(
                        "%s: live path failed (%s); falling back to mock data", name, failure,
                        extra={"path": "live"},
                    )
                    self._connection.mark_offline(f"{name} failed: {failure}")
                else:
                    logger.info("%s served by path=live", name, extra={"path": "live"})
                    return result

            result = await getattr(self._mock, name)(*call_args, **kwargs)
            logger.info(
                "%s served by path=mock (connection %s)", name, self._connection.state.value,
                extra={"path": "mock"},
            )
            return result

        return wrapper

    return decorator


class LedgerClient:
    """
    Resilient client for the royalty contract.

    Example:
        >>> async with LedgerClient.from_config(environment=browser_globals) as client:
        ...     await client.connect()
        ...     work_id = await client.register_work("Song", "", "music", "ipfs://...", 10, 5, 0.001, 0.01)
    """

    def __init__(
        self,
        connection: ConnectionManager,
        probe: WalletProbe,
        mock: MockLedger | None = None,
    ) -> None:
        self._connection = connection
        self._probe = probe
        self._mock = mock or MockLedger()
        self._sessions = SessionHolder()
        self._probe_task: asyncio.Task[Any] | None = None
        # get_royalty_stats doubles as the health probe
        self._connection.probe = self._fetch_stats

    @classmethod
    def from_config(
        cls,
        settings: LedgerSettings | None = None,
        environment: Environment | None = None,
    ) -> "LedgerClient":
        settings = settings or LedgerSettings.from_env()
        setup_logger(level=settings.log_level)

        def rpc_factory() -> LedgerRpcClient:
            return LedgerRpcClient(settings.rpc_url, settings.contract_id, timeout=settings.rpc_timeout)

        connection = ConnectionManager(
            rpc_factory,
            init_interval_ms=settings.rpc_init_interval_ms,
            init_timeout_ms=settings.rpc_init_timeout_ms,
            health_timeout=settings.rpc_timeout,
        )
        probe = WalletProbe(
            environment,
            max_attempts=settings.wallet_probe_attempts,
            interval_ms=settings.wallet_probe_interval_ms,
        )
        return cls(connection, probe, MockLedger(latency_ms=settings.mock_latency_ms))

    # Lifecycle

    def start(self) -> None:
        """Start wallet detection and connection setup as independent tasks."""
        self._connection.start()
        if self._probe_task is None or self._probe_task.done():
            self._probe_task = asyncio.create_task(self._probe.run())

    async def wait_ready(self) -> ConnectionState:
        if self._probe_task is not None and not self._probe_task.cancelled():
            await self._probe_task
        return await self._connection.wait_ready()

    async def close(self) -> None:
        self._probe.cancel()
        if self._probe_task is not None and not self._probe_task.done():
            self._probe_task.cancel()
            try:
                await self._probe_task
            except asyncio.CancelledError:
                pass
        self._probe_task = None
        await self._connection.close()

    async def __aenter__(self) -> "LedgerClient":
        self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # Status and session

    def get_connection_status(self) -> ConnectionState:
        return self._connection.state

    @property
    def session(self) -> AccountSession | None:
        return self._sessions.current

    async def recheck_connection(self) -> ConnectionState:
        """Explicit health re-check; the only way out of offline."""
        return await self._connection.health_check()

    async def connect(self) -> AccountSession:
        """
        Connect the wallet and store the session.

        Raises:
            ConnectError: with kind NO_PROVIDER, UNSUPPORTED_PROVIDER,
                USER_REJECTED or NO_IDENTITY.
        """
        capability = self._probe.current()
        if capability is None and not (self._probe_task and not self._probe_task.done()):
            result = await self._probe.run()
            capability = result.capability
        session = await connect_wallet(capability)
        self._sessions.set(session)
        return session

    def _provider_missing(self) -> bool:
        """True once a finished probe found nothing and the wallet is still absent."""
        result = self._probe.last_result
        return result is not None and not result.found and self._probe.current() is None

    def disconnect(self) -> None:
        self._sessions.clear()

    def on_accounts_changed(self, accounts: list[str]) -> AccountSession | None:
        return self._sessions.on_accounts_changed(accounts)

    # Live path helpers

    def _rpc(self) -> LedgerRpcClient:
        rpc = self._connection.rpc
        if rpc is None:
            raise RemoteCallFailure("RPC client not initialized")
        return rpc

    async def _invoke(self, function: str, args: dict[str, Any] | None = None, source: str | None = None) -> Any:
        return await asyncio.to_thread(self._rpc().invoke, function, args or {}, source)

    async def _fetch_stats(self) -> RoyaltyStats:
        raw = await self._invoke("get_royalty_stats")
        try:
            total_works = int(raw["total_works"])
            revenue = to_decimal(raw["total_revenue"])
            return RoyaltyStats(
                total_works=total_works,
                total_licenses=int(raw["total_licenses"]),
                total_payments=int(raw["total_payments"]),
                total_revenue=revenue,
                total_earned=revenue,
                pending=to_decimal(0),
                works_count=total_works,
            )
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise RemoteCallFailure(f"Malformed royalty stats: {raw!r}", e) from e

    @staticmethod
    def _decode_config(raw: Any, work_id: int) -> RoyaltyConfig:
        try:
            return RoyaltyConfig(
                work_id=int(raw.get("work_id", work_id)),
                primary_pct=from_basis_points(raw["primary_sale_percentage"]),
                secondary_pct=from_basis_points(raw["secondary_sale_percentage"]),
                streaming_rate=to_decimal(raw["streaming_rate"]),
                min_fee=to_decimal(raw["minimum_license_fee"]),
            )
        except (AttributeError, KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise RemoteCallFailure(f"Malformed royalty config for work {work_id}: {raw!r}", e) from e

    @staticmethod
    def _decode_license(raw: Any, license_id: int) -> License:
        try:
            expiration = int(raw.get("expiration_time") or 0)
            return License(
                license_id=int(raw.get("license_id", license_id)),
                work_id=int(raw["work_id"]),
                licensee=str(raw["licensee"]),
                amount=to_decimal(raw["payment_amount"]),
                license_type=str(raw["license_type"]),
                purchased_at=from_timestamp(raw["issue_time"]),
                expires_at=from_timestamp(expiration) if expiration else None,
            )
        except (AttributeError, KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise RemoteCallFailure(f"Malformed license {license_id}: {raw!r}", e) from e

    @staticmethod
    def _decode_ids(raw: Any, what: str) -> list[int]:
        if not isinstance(raw, list):
            raise RemoteCallFailure(f"Malformed {what}: expected a list, got {raw!r}")
        try:
            return [int(x) for x in raw]
        except (TypeError, ValueError) as e:
            raise RemoteCallFailure(f"Malformed {what}: {raw!r}", e) from e

    # Writes

    @ledger_operation(account_scoped=True, with_identity=True, validate=validate_register_work)
    async def register_work(
        self,
        creator: str,
        title: str,
        description: str,
        work_type: str,
        content_hash: str,
        primary_pct: float,
        secondary_pct: float,
        streaming_rate: Any,
        min_fee: Any,
    ) -> int:
        """Register a work and return its ledger id."""
        args = {
            "creator": creator,
            "title": str(title).strip(),
            "description": str(description or ""),
            "content_type": WorkType.parse(work_type).value,
            "content_hash": str(content_hash).strip(),
            "primary_sale_percentage": to_basis_points(primary_pct),
            "secondary_sale_percentage": to_basis_points(secondary_pct),
            "streaming_rate": str(to_decimal(streaming_rate)),
            "minimum_license_fee": str(to_decimal(min_fee)),
        }
        raw = await self._invoke("register_work", args, source=creator)
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise RemoteCallFailure(f"Malformed register_work result: {raw!r}", e) from e

    @ledger_operation(account_scoped=True, with_identity=True, validate=validate_purchase_license)
    async def purchase_license(
        self,
        licensee: str,
        work_id: int,
        license_type: str,
        duration_seconds: int,
        amount: Any,
    ) -> int:
        """Buy a license; duration_seconds == 0 means perpetual."""
        args = {
            "work_id": work_id,
            "licensee": licensee,
            "license_type": LicenseType.parse(license_type).value,
            "duration_seconds": duration_seconds,
            "payment_amount": str(to_decimal(amount)),
        }
        raw = await self._invoke("purchase_license", args, source=licensee)
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise RemoteCallFailure(f"Malformed purchase_license result: {raw!r}", e) from e

    # Reads

    @ledger_operation(account_scoped=True, with_identity=True)
    async def get_creator_works(self, creator: str) -> list[int]:
        raw = await self._invoke("get_creator_works", {"creator": creator})
        return self._decode_ids(raw, "creator works")

    @ledger_operation(validate=validate_work_id)
    async def get_work_details(self, work_id: int) -> Work:
        """Work metadata; royalty_percentage comes from the work's royalty config."""
        raw = await self._invoke("get_work", {"work_id": work_id})
        config = self._decode_config(await self._invoke("get_royalty_config", {"work_id": work_id}), work_id)
        try:
            return Work(
                work_id=int(raw.get("work_id", work_id)),
                title=str(raw["title"]),
                description=str(raw.get("description") or ""),
                creator=str(raw["creator"]),
                content_hash=str(raw.get("content_hash") or ""),
                work_type=WorkType.parse(raw.get("content_type")),
                royalty_percentage=config.primary_pct,
                creation_time=from_timestamp(raw["creation_time"]),
                is_active=bool(raw.get("is_active", True)),
                license_count=int(raw.get("license_count") or 0),
            )
        except (AttributeError, KeyError, TypeError, ValueError, OverflowError) as e:
            raise RemoteCallFailure(f"Malformed work {work_id}: {raw!r}", e) from e

    @ledger_operation(validate=validate_work_id)
    async def get_royalty_config(self, work_id: int) -> RoyaltyConfig:
        raw = await self._invoke("get_royalty_config", {"work_id": work_id})
        return self._decode_config(raw, work_id)

    @ledger_operation()
    async def get_royalty_stats(self) -> RoyaltyStats:
        return await self._fetch_stats()

    @ledger_operation()
    async def get_license(self, license_id: int) -> License:
        raw = await self._invoke("get_license", {"license_id": license_id})
        return self._decode_license(raw, license_id)

    @ledger_operation()
    async def verify_license(self, license_id: int) -> bool:
        raw = await self._invoke("verify_license", {"license_id": license_id})
        if not isinstance(raw, bool):
            raise RemoteCallFailure(f"Malformed verify_license result: {raw!r}")
        return raw

    @ledger_operation(validate=validate_work_id)
    async def get_work_licenses(self, work_id: int) -> list[int]:
        raw = await self._invoke("get_work_licenses", {"work_id": work_id})
        return self._decode_ids(raw, "work licenses")

    @ledger_operation(account_scoped=True, with_identity=True)
    async def get_royalty_history(self, creator: str) -> list[RoyaltyPayment]:
        """Payments recorded against the creator's works, oldest first."""
        work_ids = self._decode_ids(await self._invoke("get_creator_works", {"creator": creator}), "creator works")
        payments: list[RoyaltyPayment] = []
        for work_id in work_ids:
            payment_ids = self._decode_ids(
                await self._invoke("get_work_payments", {"work_id": work_id}), "work payments"
            )
            for payment_id in payment_ids:
                raw = await self._invoke("get_payment", {"payment_id": payment_id})
                try:
                    payments.append(RoyaltyPayment(
                        payment_id=int(raw.get("payment_id", payment_id)),
                        work_id=int(raw["work_id"]),
                        payer=str(raw["payer"]),
                        amount=to_decimal(raw["payment_amount"]),
                        payment_type=str(raw["payment_type"]),
                        paid_at=from_timestamp(raw["payment_time"]),
                    ))
                except (AttributeError, KeyError, TypeError, ValueError, ArithmeticError) as e:
                    raise RemoteCallFailure(f"Malformed payment {payment_id}: {raw!r}", e) from e
        payments.sort(key=lambda p: (p.paid_at, p.payment_id))
        return payments

    @ledger_operation(account_scoped=True, with_identity=True, propagate=(AccountNotFoundError,))
    async def get_account_details(self, address: str) -> AccountInfo:
        """
        Raises:
            AccountNotFoundError: The connected account is not funded.
        """
        return await asyncio.to_thread(self._rpc().get_account, address)

