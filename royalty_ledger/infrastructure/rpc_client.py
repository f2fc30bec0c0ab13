"""
JSON-RPC client for the ledger endpoint and the royalty contract.

Contract invocation payloads are opaque here: arguments go out as JSON and
the decoded `result` comes back as-is. Every failure is raised as
RemoteCallFailure so the facade can classify it in one place.
"""

from __future__ import annotations

import itertools
import json
from typing import Any

import requests

from royalty_ledger.domains.errors import AccountNotFoundError, RemoteCallFailure
from royalty_ledger.domains.models import AccountInfo
from royalty_ledger.utils.logger import get_logger

logger = get_logger()

INVOKE_METHOD = "invokeContract"


def _is_not_found(error: dict[str, Any]) -> bool:
    msg = str(error.get("message") or "").lower()
    return error.get("code") == 404 or "not found" in msg


class LedgerRpcClient:
    """
    Ledger RPC wrapper on a pooled requests session.

    Example:
        >>> with LedgerRpcClient("https://soroban-testnet.stellar.org", contract_id) as rpc:
        ...     rpc.get_health()
    """

    def __init__(self, base_url: str, contract_id: str, timeout: float = 30.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.contract_id = contract_id
        self.timeout = timeout
        self._ids = itertools.count(1)
        self.session = requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
        })

    def _post(self, method: str, params: dict[str, Any] | None = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or {},
        }
        try:
            response = self.session.post(self.base_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteCallFailure(f"RPC {method} request failed: {e}", e) from e

        if response.status_code == 404:
            raise AccountNotFoundError(f"RPC {method}: resource not found")
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise RemoteCallFailure(f"RPC {method} HTTP error: {e}", e) from e

        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise RemoteCallFailure(f"RPC {method} returned invalid JSON", e) from e
        if not isinstance(body, dict):
            raise RemoteCallFailure(f"RPC {method} returned a non-object response")

        error = body.get("error")
        if error:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            if _is_not_found(error):
                raise AccountNotFoundError(f"RPC {method}: {error.get('message') or 'not found'}")
            raise RemoteCallFailure(f"RPC {method} error {error.get('code')}: {error.get('message')}")
        if "result" not in body:
            raise RemoteCallFailure(f"RPC {method} response has no result")
        return body["result"]

    def get_health(self) -> dict[str, Any]:
        """
        Lightweight liveness check.

        Returns:
            dict with at least 'status'
        """
        result = self._post("getHealth")
        if not isinstance(result, dict) or result.get("status") != "healthy":
            raise RemoteCallFailure(f"Ledger RPC unhealthy: {result!r}")
        return result

    def get_account(self, address: str) -> AccountInfo:
        """
        Fetch account details.

        Raises:
            AccountNotFoundError: The account is not funded yet.
        """
        try:
            result = self._post("getAccount", {"address": address})
        except AccountNotFoundError as e:
            raise AccountNotFoundError("Account not found. Please fund your account.", e) from e
        if not isinstance(result, dict):
            raise RemoteCallFailure("Malformed getAccount response")
        try:
            return AccountInfo(
                account_id=str(result.get("id") or result.get("account_id") or address),
                sequence=int(result.get("sequence", 0)),
                balances=dict(result.get("balances") or {}),
            )
        except (TypeError, ValueError) as e:
            raise RemoteCallFailure("Malformed getAccount response", e) from e

    def invoke(self, function: str, args: dict[str, Any] | None = None, source: str | None = None) -> Any:
        """
        Invoke a contract function and return its decoded result.

        Args:
            function: Contract function name, e.g. "get_work"
            args: Named arguments, JSON-encodable
            source: Account invoking the function (required for writes)
        """
        params: dict[str, Any] = {
            "contractId": self.contract_id,
            "function": function,
            "args": args or {},
        }
        if source:
            params["source"] = source
        logger.debug("Invoking contract %s.%s", self.contract_id, function)
        return self._post(INVOKE_METHOD, params)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "LedgerRpcClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
