"""
Account session and the wallet connect flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from royalty_ledger.domains.errors import ConnectError, ConnectErrorKind, NoProviderError
from royalty_ledger.infrastructure.wallet_probe import WalletCapability
from royalty_ledger.utils.logger import get_logger

logger = get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AccountSession:
    """Authenticated wallet identity"""
    public_key: str
    connected_at: datetime = field(default_factory=_utcnow)

    @property
    def short_address(self) -> str:
        """GABCDE...WXYZ, for status displays."""
        key = self.public_key
        if len(key) <= 12:
            return key
        return f"{key[:6]}...{key[-4:]}"


async def connect_wallet(capability: WalletCapability | None) -> AccountSession:
    """
    Run the wallet handshake and return a fresh session.

    Steps: resolve provider, verify operations, check/request connection,
    fetch public key. Each failure raises ConnectError naming its step.
    """
    if capability is None:
        raise NoProviderError("no wallet provider detected. Install Freighter and reload.")

    missing = capability.missing()
    if missing:
        raise ConnectError(
            ConnectErrorKind.UNSUPPORTED_PROVIDER,
            "capability check",
            f"wallet provider ({capability.source}) does not have a {missing[0]} operation",
        )

    try:
        connected = await capability.check_connected()
    except Exception as e:
        raise ConnectError(
            ConnectErrorKind.UNSUPPORTED_PROVIDER,
            "connection check",
            f"is_connected raised {type(e).__name__}: {e}",
            e,
        ) from e

    if not connected:
        logger.info("Wallet not connected, requesting authorization")
        try:
            await capability.request_connect()
        except Exception as e:
            raise ConnectError(
                ConnectErrorKind.USER_REJECTED,
                "authorization",
                f"connection request was rejected ({e})",
                e,
            ) from e

    try:
        public_key = await capability.fetch_public_key()
    except Exception as e:
        raise ConnectError(
            ConnectErrorKind.NO_IDENTITY,
            "identity fetch",
            f"get_public_key raised {type(e).__name__}: {e}",
            e,
        ) from e
    if not public_key or not str(public_key).strip():
        raise ConnectError(
            ConnectErrorKind.NO_IDENTITY,
            "identity fetch",
            "wallet returned no public key",
        )

    session = AccountSession(public_key=str(public_key).strip())
    logger.info("Wallet connected: %s", session.short_address)
    return session


class SessionHolder:
    """Holds at most one live session."""

    def __init__(self) -> None:
        self._session: AccountSession | None = None

    @property
    def current(self) -> AccountSession | None:
        return self._session

    def set(self, session: AccountSession) -> None:
        self._session = session

    def clear(self) -> None:
        if self._session is not None:
            logger.info("Session cleared for %s", self._session.short_address)
        self._session = None

    def require(self, provider_missing: bool = False) -> AccountSession:
        """
        Return the active session.

        Raises:
            NoProviderError: No session and wallet detection found nothing.
            ConnectError: No session (kind NOT_CONNECTED).
        """
        if self._session is None and provider_missing:
            raise NoProviderError("no wallet provider detected. Install Freighter to use account actions.")
        if self._session is None:
            raise ConnectError(
                ConnectErrorKind.NOT_CONNECTED,
                "session check",
                "please connect your wallet first",
            )
        return self._session

    def on_accounts_changed(self, accounts: list[str]) -> AccountSession | None:
        """Account-changed event: no accounts clears, otherwise switch to the first."""
        if not accounts or not accounts[0]:
            self.clear()
            return None
        if self._session is None or self._session.public_key != accounts[0]:
            self._session = AccountSession(public_key=str(accounts[0]))
            logger.info("Active account changed to %s", self._session.short_address)
        return self._session
