"""Load and validate environment variables. Uses python-dotenv.

Callers should use the accessor functions below (or `LedgerSettings.from_env`)
rather than reading `os.environ` directly, to keep environment handling
consistent.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_RPC_URL = "https://soroban-testnet.stellar.org"
DEFAULT_CONTRACT_ID = "CBZVR4C4WUVFLFHU2T2IOCYGWGSQFZNPQJ7QJYMSCLP7JT6GYO224GAF"
DEFAULT_NETWORK_PASSPHRASE = "Test SDF Network ; September 2015"


def _project_root() -> Path:
    """Resolve project root (the directory holding royalty_ledger/)."""
    return Path(__file__).resolve().parent.parent.parent


def load_config() -> None:
    """
    Load .env from project root. Idempotent; safe to call multiple times.
    Existing environment variables win over .env values.
    """
    load_dotenv(_project_root() / ".env", override=False)


def get_required(key: str) -> str:
    """
    Get required env var. Raises if missing or empty.

    Raises:
        ValueError: If key is missing or empty after trimming.
    """
    load_config()
    val = os.getenv(key, "").strip()
    if not val:
        raise ValueError(
            f"Missing required environment variable: {key}. "
            "Set it in .env or export it."
        )
    return val


def get_optional(key: str, default: str = "") -> str:
    """Get optional env var; return default if missing or empty."""
    load_config()
    val = os.getenv(key, "").strip()
    return val if val else default


def get_optional_int(key: str, default: int) -> int:
    """Get optional env var as int; return default if missing or invalid."""
    load_config()
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_optional_float(key: str, default: float) -> float:
    """Get optional env var as float; return default if missing or invalid."""
    load_config()
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# --- Public config accessors ---

def rpc_url() -> str:
    """Optional: ledger RPC endpoint. Default is the Soroban testnet."""
    return get_optional("LEDGER_RPC_URL", DEFAULT_RPC_URL)


def contract_id() -> str:
    """Optional: deployed royalty contract id."""
    return get_optional("LEDGER_CONTRACT_ID", DEFAULT_CONTRACT_ID)


def network_passphrase() -> str:
    return get_optional("LEDGER_NETWORK_PASSPHRASE", DEFAULT_NETWORK_PASSPHRASE)


def rpc_timeout() -> float:
    """Optional: per-request RPC timeout in seconds. Default 30."""
    return get_optional_float("LEDGER_RPC_TIMEOUT", 30.0)


def wallet_probe_attempts() -> int:
    """Optional: wallet detection attempts before giving up. Default 10."""
    return max(1, get_optional_int("WALLET_PROBE_ATTEMPTS", 10))


def wallet_probe_interval_ms() -> int:
    return max(0, get_optional_int("WALLET_PROBE_INTERVAL_MS", 1000))


def rpc_init_interval_ms() -> int:
    """Optional: delay between RPC client construction attempts. Default 1000."""
    return max(0, get_optional_int("RPC_INIT_INTERVAL_MS", 1000))


def rpc_init_timeout_ms() -> int:
    """Optional: overall budget for RPC client construction. Default 30000."""
    return max(0, get_optional_int("RPC_INIT_TIMEOUT_MS", 30000))


def mock_latency_ms() -> int:
    """Optional: artificial delay for simulated writes. Default 1500."""
    return max(0, get_optional_int("MOCK_LATENCY_MS", 1500))


def log_level() -> str:
    return get_optional("LOG_LEVEL", "INFO").upper()


def project_root() -> Path:
    return _project_root()


@dataclass
class LedgerSettings:
    """Snapshot of every tunable the client needs."""

    rpc_url: str = DEFAULT_RPC_URL
    contract_id: str = DEFAULT_CONTRACT_ID
    network_passphrase: str = DEFAULT_NETWORK_PASSPHRASE
    rpc_timeout: float = 30.0
    wallet_probe_attempts: int = 10
    wallet_probe_interval_ms: int = 1000
    rpc_init_interval_ms: int = 1000
    rpc_init_timeout_ms: int = 30000
    mock_latency_ms: int = 1500
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "LedgerSettings":
        return cls(
            rpc_url=rpc_url(),
            contract_id=contract_id(),
            network_passphrase=network_passphrase(),
            rpc_timeout=rpc_timeout(),
            wallet_probe_attempts=wallet_probe_attempts(),
            wallet_probe_interval_ms=wallet_probe_interval_ms(),
            rpc_init_interval_ms=rpc_init_interval_ms(),
            rpc_init_timeout_ms=rpc_init_timeout_ms(),
            mock_latency_ms=mock_latency_ms(),
            log_level=log_level(),
        )
