"""
Client-side input checks. Every check raises ValidationError before any
remote interaction is attempted.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from royalty_ledger.domains.errors import ValidationError
from royalty_ledger.domains.models import LicenseType, WorkType


def _require_text(field: str, value: Any) -> str:
    text = str(value or "").strip()
    if not text:
        raise ValidationError(field, "must not be empty")
    return text


def _choice(value: Any) -> str:
    """Enum members compare by value, plain strings case-insensitively."""
    return str(getattr(value, "value", value) or "").strip().lower()


def _require_percentage(field: str, value: Any) -> float:
    try:
        pct = float(value)
    except (TypeError, ValueError):
        raise ValidationError(field, f"{value!r} is not a number") from None
    if pct != pct or not 0 <= pct <= 100:
        raise ValidationError(field, f"{value!r} must be between 0 and 100")
    return pct


def _require_amount(field: str, value: Any, *, strictly_positive: bool) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(field, f"{value!r} is not a number") from None
    if not amount.is_finite():
        raise ValidationError(field, f"{value!r} is not a finite number")
    if strictly_positive and amount <= 0:
        raise ValidationError(field, "must be greater than 0")
    if amount < 0:
        raise ValidationError(field, "must not be negative")
    return amount


def validate_register_work(
    title: Any,
    description: Any,
    work_type: Any,
    content_hash: Any,
    primary_pct: Any,
    secondary_pct: Any,
    streaming_rate: Any,
    min_fee: Any,
) -> None:
    _require_text("title", title)
    _require_text("content_hash", content_hash)
    if _choice(work_type) not in {t.value for t in WorkType}:
        raise ValidationError("work_type", f"{work_type!r} is not one of {[t.value for t in WorkType]}")
    _require_percentage("primary_pct", primary_pct)
    _require_percentage("secondary_pct", secondary_pct)
    _require_amount("streaming_rate", streaming_rate, strictly_positive=False)
    _require_amount("min_fee", min_fee, strictly_positive=False)


def validate_work_id(work_id: Any) -> None:
    if isinstance(work_id, bool) or not isinstance(work_id, int) or work_id < 1:
        raise ValidationError("work_id", f"{work_id!r} must be a positive integer")


def validate_purchase_license(
    work_id: Any,
    license_type: Any,
    duration_seconds: Any,
    amount: Any,
) -> None:
    validate_work_id(work_id)
    if _choice(license_type) not in {t.value for t in LicenseType}:
        raise ValidationError("license_type", f"{license_type!r} is not one of {[t.value for t in LicenseType]}")
    if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, int) or duration_seconds < 0:
        raise ValidationError("duration_seconds", "must be a non-negative integer (0 = perpetual)")
    _require_amount("amount", amount, strictly_positive=True)
