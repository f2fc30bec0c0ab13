"""
Tests for LedgerRpcClient: JSON-RPC envelope, error mapping, account fetch.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from royalty_ledger.domains.errors import AccountNotFoundError, RemoteCallFailure
from royalty_ledger.infrastructure.rpc_client import INVOKE_METHOD, LedgerRpcClient


def _response(body=None, status: int = 200, bad_json: bool = False) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    if bad_json:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = body
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Server Error")
    else:
        resp.raise_for_status = MagicMock()
    return resp


@pytest.fixture
def client() -> LedgerRpcClient:
    return LedgerRpcClient("https://rpc.test/", "CCONTRACT", timeout=5.0)


def test_invoke_builds_envelope(client: LedgerRpcClient) -> None:
    resp = _response({"jsonrpc": "2.0", "id": 1, "result": 7})
    with patch.object(client.session, "post", return_value=resp) as mock_post:
        assert client.invoke("register_work", {"title": "Song"}, source="GSRC") == 7

    url = mock_post.call_args.args[0]
    payload = mock_post.call_args.kwargs["json"]
    assert url == "https://rpc.test"
    assert mock_post.call_args.kwargs["timeout"] == 5.0
    assert payload["jsonrpc"] == "2.0"
    assert payload["method"] == INVOKE_METHOD
    assert payload["params"] == {
        "contractId": "CCONTRACT",
        "function": "register_work",
        "args": {"title": "Song"},
        "source": "GSRC",
    }


def test_request_ids_increase(client: LedgerRpcClient) -> None:
    resp = _response({"result": {}})
    with patch.object(client.session, "post", return_value=resp) as mock_post:
        client.invoke("get_royalty_stats")
        client.invoke("get_royalty_stats")
    ids = [c.kwargs["json"]["id"] for c in mock_post.call_args_list]
    assert ids == [1, 2]
    assert "source" not in mock_post.call_args.kwargs["json"]["params"]


def test_network_error_is_remote_failure(client: LedgerRpcClient) -> None:
    with patch.object(client.session, "post", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(RemoteCallFailure) as exc:
            client.invoke("get_work", {"work_id": 1})
    assert isinstance(exc.value.original, requests.ConnectionError)


def test_http_error_is_remote_failure(client: LedgerRpcClient) -> None:
    with patch.object(client.session, "post", return_value=_response(status=503)):
        with pytest.raises(RemoteCallFailure, match="HTTP error"):
            client.invoke("get_work", {"work_id": 1})


def test_invalid_json_is_remote_failure(client: LedgerRpcClient) -> None:
    with patch.object(client.session, "post", return_value=_response(bad_json=True)):
        with pytest.raises(RemoteCallFailure, match="invalid JSON"):
            client.invoke("get_work", {"work_id": 1})


def test_rpc_error_object(client: LedgerRpcClient) -> None:
    body = {"error": {"code": -32000, "message": "contract trapped"}}
    with patch.object(client.session, "post", return_value=_response(body)):
        with pytest.raises(RemoteCallFailure, match="contract trapped") as exc:
            client.invoke("get_work", {"work_id": 99})
    assert not isinstance(exc.value, AccountNotFoundError)


def test_missing_result(client: LedgerRpcClient) -> None:
    with patch.object(client.session, "post", return_value=_response({"jsonrpc": "2.0", "id": 1})):
        with pytest.raises(RemoteCallFailure, match="no result"):
            client.invoke("get_work", {"work_id": 1})


def test_health(client: LedgerRpcClient) -> None:
    with patch.object(client.session, "post", return_value=_response({"result": {"status": "healthy"}})):
        assert client.get_health()["status"] == "healthy"
    with patch.object(client.session, "post", return_value=_response({"result": {"status": "degraded"}})):
        with pytest.raises(RemoteCallFailure, match="unhealthy"):
            client.get_health()


def test_get_account(client: LedgerRpcClient) -> None:
    body = {"result": {"id": "GACC", "sequence": "123", "balances": {"native": "9.5"}}}
    with patch.object(client.session, "post", return_value=_response(body)) as mock_post:
        account = client.get_account("GACC")
    assert mock_post.call_args.kwargs["json"]["params"] == {"address": "GACC"}
    assert account.account_id == "GACC"
    assert account.sequence == 123
    assert account.balances == {"native": "9.5"}


@pytest.mark.parametrize("resp", [
    _response(status=404),
    _response({"error": {"code": 404, "message": "account missing"}}),
    _response({"error": {"code": -1, "message": "Account not found"}}),
])
def test_get_account_not_found(client: LedgerRpcClient, resp: MagicMock) -> None:
    with patch.object(client.session, "post", return_value=resp):
        with pytest.raises(AccountNotFoundError, match="Please fund your account"):
            client.get_account("GNEW")


def test_context_manager_closes_session() -> None:
    with patch.object(requests.Session, "close") as mock_close:
        with LedgerRpcClient("https://rpc.test", "C1"):
            pass
    mock_close.assert_called_once()
