"""
Shared fakes: an in-memory royalty contract behind a mocked LedgerRpcClient,
and a scriptable wallet provider.
"""

from __future__ import annotations

from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

from royalty_ledger.infrastructure.rpc_client import LedgerRpcClient
from royalty_ledger.infrastructure.wallet_probe import WalletProbe
from royalty_ledger.orchestration.connection_manager import ConnectionManager
from royalty_ledger.orchestration.ledger_client import LedgerClient
from royalty_ledger.orchestration.mock_ledger import MockLedger

NOW = 1_700_000_000
PUBLIC_KEY = "GABC...XYZ"


class FakeContract:
    """Royalty contract state machine, reachable through `invoke`."""

    def __init__(self) -> None:
        self.works: dict[int, dict[str, Any]] = {}
        self.configs: dict[int, dict[str, Any]] = {}
        self.creator_works: dict[str, list[int]] = {}
        self.licenses: dict[int, dict[str, Any]] = {}
        self.payments: dict[int, dict[str, Any]] = {}
        self.stats = {"total_works": 0, "total_licenses": 0, "total_payments": 0, "total_revenue": "0"}
        self.calls: list[str] = []
        self.fail: Exception | None = None
        self.overrides: dict[str, Any] = {}

    def invoke(self, function: str, args: dict[str, Any] | None = None, source: str | None = None) -> Any:
        self.calls.append(function)
        if self.fail is not None:
            raise self.fail
        if function in self.overrides:
            return self.overrides[function]
        return getattr(self, "_" + function)(**(args or {}))

    def _register_work(self, creator, title, description, content_type, content_hash,
                       primary_sale_percentage, secondary_sale_percentage,
                       streaming_rate, minimum_license_fee) -> int:
        work_id = len(self.works) + 1
        self.works[work_id] = {
            "work_id": work_id,
            "creator": creator,
            "title": title,
            "description": description,
            "creation_time": NOW,
            "content_type": content_type,
            "content_hash": content_hash,
            "is_active": True,
            "license_count": 0,
        }
        self.configs[work_id] = {
            "work_id": work_id,
            "primary_sale_percentage": primary_sale_percentage,
            "secondary_sale_percentage": secondary_sale_percentage,
            "streaming_rate": streaming_rate,
            "minimum_license_fee": minimum_license_fee,
        }
        self.creator_works.setdefault(creator, []).append(work_id)
        self.stats["total_works"] += 1
        return work_id

    def _purchase_license(self, work_id, licensee, license_type, duration_seconds, payment_amount) -> int:
        license_id = len(self.licenses) + 1
        self.licenses[license_id] = {
            "license_id": license_id,
            "work_id": work_id,
            "licensee": licensee,
            "license_type": license_type,
            "issue_time": NOW,
            "expiration_time": 0 if duration_seconds == 0 else NOW + duration_seconds,
            "payment_amount": payment_amount,
        }
        payment_id = len(self.payments) + 1
        self.payments[payment_id] = {
            "payment_id": payment_id,
            "work_id": work_id,
            "payer": licensee,
            "payment_time": NOW + payment_id,
            "payment_amount": payment_amount,
            "payment_type": "license",
        }
        self.works[work_id]["license_count"] += 1
        self.stats["total_licenses"] += 1
        self.stats["total_payments"] += 1
        return license_id

    def _get_creator_works(self, creator) -> list[int]:
        return list(self.creator_works.get(creator, []))

    def _get_work(self, work_id) -> dict[str, Any]:
        return self.works[work_id]

    def _get_royalty_config(self, work_id) -> dict[str, Any]:
        return self.configs[work_id]

    def _get_royalty_stats(self) -> dict[str, Any]:
        return dict(self.stats)

    def _get_license(self, license_id) -> dict[str, Any]:
        return self.licenses[license_id]

    def _verify_license(self, license_id) -> bool:
        lic = self.licenses.get(license_id)
        return lic is not None and (lic["expiration_time"] == 0 or NOW < lic["expiration_time"])

    def _get_work_licenses(self, work_id) -> list[int]:
        return [i for i, lic in self.licenses.items() if lic["work_id"] == work_id]

    def _get_work_payments(self, work_id) -> list[int]:
        return [i for i, p in self.payments.items() if p["work_id"] == work_id]

    def _get_payment(self, payment_id) -> dict[str, Any]:
        return self.payments[payment_id]


class FakeWallet:
    """Freighter-like provider with async methods."""

    def __init__(self, connected: bool = False, public_key: str | None = PUBLIC_KEY, reject: bool = False) -> None:
        self.connected = connected
        self.public_key = public_key
        self.reject = reject
        self.connect_calls = 0

    async def isConnected(self) -> bool:
        return self.connected

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.reject:
            raise PermissionError("User declined access")
        self.connected = True

    async def getPublicKey(self) -> str | None:
        return self.public_key


@pytest.fixture
def contract() -> FakeContract:
    return FakeContract()


@pytest.fixture
def rpc(contract: FakeContract) -> MagicMock:
    mock_rpc = MagicMock(spec=LedgerRpcClient)
    mock_rpc.base_url = "http://ledger.test"
    mock_rpc.invoke.side_effect = contract.invoke
    return mock_rpc


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def make_wallet() -> type[FakeWallet]:
    return FakeWallet


@pytest.fixture
def make_client(rpc: MagicMock) -> Callable[..., LedgerClient]:
    """Build a LedgerClient with fast timings; environment=None means no wallet."""

    def _make(environment: Any = None, attempts: int = 3, interval_ms: int = 1) -> LedgerClient:
        connection = ConnectionManager(lambda: rpc, init_interval_ms=1, init_timeout_ms=50, health_timeout=2.0)
        probe = WalletProbe(environment, max_attempts=attempts, interval_ms=interval_ms)
        return LedgerClient(connection, probe, MockLedger(latency_ms=0))

    return _make
