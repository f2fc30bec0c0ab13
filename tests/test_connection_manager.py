"""
Tests for ConnectionManager: bounded init retry, health checks, state transitions.
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

from royalty_ledger.domains.errors import RemoteCallFailure, SdkUnavailableError
from royalty_ledger.domains.models import ConnectionState
from royalty_ledger.orchestration.connection_manager import ConnectionManager


def _ok_probe():
    async def probe():
        return {"status": "healthy"}
    return probe


def _failing_probe(exc: Exception):
    async def probe():
        raise exc
    return probe


def test_initial_state_is_connecting(rpc) -> None:
    cm = ConnectionManager(lambda: rpc)
    assert cm.state is ConnectionState.CONNECTING
    assert not cm.is_live


def test_initialize_live(rpc) -> None:
    cm = ConnectionManager(lambda: rpc, probe=_ok_probe())
    assert asyncio.run(cm.initialize()) is ConnectionState.LIVE
    assert cm.rpc is rpc
    assert cm.is_live


def test_initialize_retries_until_sdk_loads(rpc) -> None:
    attempts = {"n": 0}

    def factory():
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise SdkUnavailableError("sdk not loaded yet")
        return rpc

    cm = ConnectionManager(factory, init_interval_ms=1, init_timeout_ms=1000, probe=_ok_probe())
    assert asyncio.run(cm.initialize()) is ConnectionState.LIVE
    assert attempts["n"] == 3


def test_initialize_gives_up_after_timeout() -> None:
    attempts = {"n": 0}

    def factory():
        attempts["n"] += 1
        raise SdkUnavailableError("sdk never loads")

    cm = ConnectionManager(factory, init_interval_ms=5, init_timeout_ms=30)
    assert asyncio.run(cm.initialize()) is ConnectionState.OFFLINE
    assert 1 < attempts["n"] <= 20


def test_initialize_factory_error_goes_offline_immediately() -> None:
    factory = MagicMock(side_effect=ValueError("bad url"))
    cm = ConnectionManager(factory, init_interval_ms=1, init_timeout_ms=1000)
    assert asyncio.run(cm.initialize()) is ConnectionState.OFFLINE
    assert factory.call_count == 1


def test_health_check_failure_goes_offline(rpc) -> None:
    cm = ConnectionManager(lambda: rpc, probe=_failing_probe(RemoteCallFailure("timeout")))
    assert asyncio.run(cm.initialize()) is ConnectionState.OFFLINE


def test_health_check_timeout_goes_offline(rpc) -> None:
    async def slow():
        await asyncio.sleep(1)

    cm = ConnectionManager(lambda: rpc, health_timeout=0.01, probe=slow)
    assert asyncio.run(cm.health_check()) is ConnectionState.OFFLINE


def test_offline_is_sticky_until_recheck(rpc) -> None:
    outcome = {"fail": True}

    async def probe():
        if outcome["fail"]:
            raise RemoteCallFailure("down")
        return {}

    cm = ConnectionManager(lambda: rpc, probe=probe)

    async def scenario():
        states = [await cm.initialize()]
        outcome["fail"] = False
        states.append(cm.state)
        states.append(await cm.health_check())
        return states

    assert asyncio.run(scenario()) == [
        ConnectionState.OFFLINE,
        ConnectionState.OFFLINE,
        ConnectionState.LIVE,
    ]


def test_mark_offline_from_live(rpc) -> None:
    cm = ConnectionManager(lambda: rpc, probe=_ok_probe())
    asyncio.run(cm.initialize())
    cm.mark_offline("invoke failed")
    assert cm.state is ConnectionState.OFFLINE


def test_default_probe_uses_rpc_health(rpc) -> None:
    rpc.get_health.return_value = {"status": "healthy"}
    cm = ConnectionManager(lambda: rpc)
    assert asyncio.run(cm.initialize()) is ConnectionState.LIVE
    rpc.get_health.assert_called_once()


def test_start_and_close_cancel_pending_init(rpc) -> None:
    def factory():
        raise SdkUnavailableError("never")

    cm = ConnectionManager(factory, init_interval_ms=10_000, init_timeout_ms=60_000)

    async def scenario():
        task = cm.start()
        await asyncio.sleep(0.01)
        await cm.close()
        return task

    task = asyncio.run(scenario())
    assert task.cancelled()
    assert cm.state is ConnectionState.CONNECTING


def test_close_closes_rpc(rpc) -> None:
    cm = ConnectionManager(lambda: rpc, probe=_ok_probe())

    async def scenario():
        await cm.initialize()
        await cm.close()

    asyncio.run(scenario())
    rpc.close.assert_called_once()
    assert cm.rpc is None
