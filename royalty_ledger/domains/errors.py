"""
Error taxonomy for the ledger client.

Validation and session errors reach the caller. Remote failures are caught at
the facade boundary and replaced by mock answers.
"""

from __future__ import annotations

from enum import Enum


class LedgerError(RuntimeError):
    """Base class for every error raised by royalty_ledger."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


class ProviderUnavailable(LedgerError):
    """No wallet capability was found after probing."""


class ConnectErrorKind(str, Enum):
    NO_PROVIDER = "no_provider"
    UNSUPPORTED_PROVIDER = "unsupported_provider"
    USER_REJECTED = "user_rejected"
    NO_IDENTITY = "no_identity"
    NOT_CONNECTED = "not_connected"


class ConnectError(LedgerError):
    """Wallet connect flow failed, or an account-scoped call had no session."""

    def __init__(
        self,
        kind: ConnectErrorKind,
        step: str,
        message: str,
        original: Exception | None = None,
    ) -> None:
        super().__init__(f"Wallet {step} failed: {message}", original)
        self.kind = kind
        self.step = step


class NoProviderError(ConnectError, ProviderUnavailable):
    """Connect attempted while no wallet provider is present."""

    def __init__(self, message: str = "no wallet provider detected") -> None:
        super().__init__(ConnectErrorKind.NO_PROVIDER, "provider lookup", message)


class RemoteCallFailure(LedgerError):
    """Any failure on the live RPC/contract path."""


class AccountNotFoundError(RemoteCallFailure):
    """Account does not exist on the ledger (not funded yet)."""


class SdkUnavailableError(LedgerError):
    """The RPC client cannot be constructed yet."""


class ValidationError(LedgerError, ValueError):
    """Client-side input constraint violation. No remote call was made."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Invalid {field}: {message}")
        self.field = field
