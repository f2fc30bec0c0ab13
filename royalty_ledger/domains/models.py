"""
Data models for works, licenses and royalty data.

Amounts are Decimal, timestamps are UTC datetimes. Percentages are plain
percent values on the client side; the ledger stores basis points.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_FLOOR, Decimal
from enum import Enum
from typing import Any


class WorkType(str, Enum):
    IMAGE = "image"
    MUSIC = "music"
    VIDEO = "video"
    TEXT = "text"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "WorkType":
        """Map any string to a WorkType. Unknown values become OTHER."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.OTHER


class LicenseType(str, Enum):
    STANDARD = "standard"
    COMMERCIAL = "commercial"
    PERSONAL = "personal"
    LIMITED = "limited"
    EXCLUSIVE = "exclusive"

    @classmethod
    def parse(cls, value: Any) -> "LicenseType":
        """Accept a member or its string value. Raises ValueError otherwise."""
        if isinstance(value, cls):
            return value
        return cls(str(value or "").strip().lower())


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    LIVE = "live"
    OFFLINE = "offline"


def to_basis_points(pct: Any) -> int:
    """10.5 -> 1050. Floors sub-basis-point digits (10.999 -> 1099)."""
    scaled = Decimal(str(pct)) * 100
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def from_basis_points(bp: int) -> float:
    return int(bp) / 100


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def from_timestamp(value: Any) -> datetime:
    """Ledger timestamps are unix seconds."""
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


@dataclass(frozen=True)
class Work:
    """Registered creative work"""
    work_id: int
    title: str
    description: str
    creator: str
    content_hash: str
    work_type: WorkType
    royalty_percentage: float
    creation_time: datetime
    is_active: bool = True
    license_count: int = 0


@dataclass(frozen=True)
class RoyaltyConfig:
    """Royalty terms of a work, in percent"""
    work_id: int
    primary_pct: float
    secondary_pct: float
    streaming_rate: Decimal
    min_fee: Decimal


@dataclass(frozen=True)
class License:
    """Purchased usage grant"""
    license_id: int
    work_id: int
    licensee: str
    amount: Decimal
    license_type: str
    purchased_at: datetime
    expires_at: datetime | None = None

    @property
    def perpetual(self) -> bool:
        return self.expires_at is None

    def is_valid(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return True
        return (now or datetime.now(timezone.utc)) < self.expires_at


@dataclass(frozen=True)
class RoyaltyPayment:
    """Recorded royalty payment"""
    payment_id: int
    work_id: int
    payer: str
    amount: Decimal
    payment_type: str
    paid_at: datetime


@dataclass(frozen=True)
class RoyaltyStats:
    """
    Read-only royalty snapshot.

    The first four fields are ledger-wide counters; total_earned, pending and
    works_count are the creator-facing summary shown in the royalties view.
    """
    total_works: int
    total_licenses: int
    total_payments: int
    total_revenue: Decimal
    total_earned: Decimal
    pending: Decimal
    works_count: int


@dataclass(frozen=True)
class AccountInfo:
    """Ledger account as returned by the RPC account fetch"""
    account_id: str
    sequence: int
    balances: dict[str, Any] = field(default_factory=dict)
