"""
Deterministic offline answers for every ledger operation.

Reads always return the same values for the same arguments. Writes sleep for
`latency_ms` to keep realistic timing, then report success with ids drawn
from a per-instance counter.
"""

from __future__ import annotations

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from royalty_ledger.domains.models import (
    AccountInfo,
    License,
    RoyaltyConfig,
    RoyaltyPayment,
    RoyaltyStats,
    Work,
    WorkType,
)

MOCK_EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)
MOCK_CREATOR = "GBZXN7PIRZGNMHGA7MUUUF4GWPY5AYPV6LY4UV2GL6VJGIQRXFDNMADI"

MOCK_STATS = RoyaltyStats(
    total_works=5,
    total_licenses=12,
    total_payments=15,
    total_revenue=Decimal("0.25"),
    total_earned=Decimal("0.08"),
    pending=Decimal("0.02"),
    works_count=3,
)

# work_id -> (title, description, work_type, royalty %)
MOCK_CATALOGUE: dict[int, tuple[str, str, WorkType, float]] = {
    1: ("Digital Landscape Painting", "A serene landscape with mountains and a lake", WorkType.IMAGE, 10.0),
    2: ("Electronic Music Track", "Upbeat electronic dance music track", WorkType.MUSIC, 15.0),
    3: ("Short Story Collection", "A collection of sci-fi short stories", WorkType.TEXT, 8.0),
}

_CYCLE = (WorkType.IMAGE, WorkType.MUSIC, WorkType.VIDEO, WorkType.TEXT)

MOCK_PAYMENTS = (
    RoyaltyPayment(1, 1, "GABCD4EF01MOCKLICENSEE0000000000000000000000000000000001", Decimal("0.05"), "license", MOCK_EPOCH + timedelta(days=20)),
    RoyaltyPayment(2, 1, "GA2345M6789MOCKLICENSEE000000000000000000000000000000002", Decimal("0.03"), "license", MOCK_EPOCH + timedelta(days=24)),
)

FIRST_WORK_ID = max(MOCK_CATALOGUE) + 1
FIRST_LICENSE_ID = MOCK_STATS.total_licenses + 1


class MockLedger:
    """Stand-in ledger used whenever the live path is unavailable."""

    def __init__(self, latency_ms: int = 1500) -> None:
        self.latency_ms = max(0, int(latency_ms))
        self._work_ids = itertools.count(FIRST_WORK_ID)
        self._license_ids = itertools.count(FIRST_LICENSE_ID)

    async def _simulate_latency(self) -> None:
        if self.latency_ms:
            await asyncio.sleep(self.latency_ms / 1000)

    # Writes

    async def register_work(self, *args, **kwargs) -> int:
        await self._simulate_latency()
        return next(self._work_ids)

    async def purchase_license(self, *args, **kwargs) -> int:
        await self._simulate_latency()
        return next(self._license_ids)

    # Reads

    async def get_creator_works(self, creator: str) -> list[int]:
        return sorted(MOCK_CATALOGUE)

    async def get_work_details(self, work_id: int) -> Work:
        if work_id in MOCK_CATALOGUE:
            title, description, work_type, pct = MOCK_CATALOGUE[work_id]
        else:
            title = f"Work #{work_id}"
            description = "This is a sample work description from the royalty contract."
            work_type = _CYCLE[work_id % len(_CYCLE)]
            pct = 10.0
        return Work(
            work_id=work_id,
            title=title,
            description=description,
            creator=MOCK_CREATOR,
            content_hash=f"QmHash{work_id}",
            work_type=work_type,
            royalty_percentage=pct,
            creation_time=MOCK_EPOCH - timedelta(days=work_id),
            is_active=True,
            license_count=work_id % 5,
        )

    async def get_royalty_config(self, work_id: int) -> RoyaltyConfig:
        return RoyaltyConfig(
            work_id=work_id,
            primary_pct=10.0,
            secondary_pct=5.0,
            streaming_rate=Decimal("0.001"),
            min_fee=Decimal("0.01"),
        )

    async def get_royalty_stats(self) -> RoyaltyStats:
        return MOCK_STATS

    async def get_license(self, license_id: int) -> License:
        return License(
            license_id=license_id,
            work_id=(license_id % len(MOCK_CATALOGUE)) + 1,
            licensee=MOCK_PAYMENTS[0].payer,
            amount=Decimal("0.01"),
            license_type="standard",
            purchased_at=MOCK_EPOCH + timedelta(days=license_id),
            expires_at=None,
        )

    async def verify_license(self, license_id: int) -> bool:
        return True

    async def get_work_licenses(self, work_id: int) -> list[int]:
        return [p.payment_id for p in MOCK_PAYMENTS if p.work_id == work_id]

    async def get_royalty_history(self, creator: str) -> list[RoyaltyPayment]:
        return list(MOCK_PAYMENTS)

    async def get_account_details(self, address: str) -> AccountInfo:
        return AccountInfo(account_id=address, sequence=0, balances={"native": "10000.0000000"})
