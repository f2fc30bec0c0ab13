"""
Royalty ledger client.

Resilient facade over a wallet provider and the royalty contract's ledger
RPC endpoint. Reads fall back to deterministic mock data and writes to
simulated success whenever the ledger is unreachable.
"""

__version__ = "0.1.0"

from royalty_ledger.domains.errors import (
    AccountNotFoundError,
    ConnectError,
    ConnectErrorKind,
    LedgerError,
    NoProviderError,
    ProviderUnavailable,
    RemoteCallFailure,
    ValidationError,
)
from royalty_ledger.domains.models import (
    ConnectionState,
    License,
    LicenseType,
    RoyaltyConfig,
    RoyaltyPayment,
    RoyaltyStats,
    Work,
    WorkType,
)
from royalty_ledger.orchestration.ledger_client import LedgerClient
from royalty_ledger.orchestration.session import AccountSession

__all__ = [
    "AccountNotFoundError",
    "AccountSession",
    "ConnectError",
    "ConnectErrorKind",
    "ConnectionState",
    "LedgerClient",
    "LedgerError",
    "License",
    "LicenseType",
    "NoProviderError",
    "ProviderUnavailable",
    "RemoteCallFailure",
    "RoyaltyConfig",
    "RoyaltyPayment",
    "RoyaltyStats",
    "ValidationError",
    "Work",
    "WorkType",
]
