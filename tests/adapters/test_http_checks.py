"""Tests for the checkpoint and Kerberos session adapters."""

import pytest

from clusterops.adapters.http.checkpoint import HttpCheckpointChecker
from clusterops.adapters.http.session import HttpSessionChecker
from clusterops.ports.outbound import CheckpointPort, SessionPort, TransportError

NOW = 1_700_000_000.0


def _nn(last_checkpoint_s, ha_state=None, pending=0):
    fs = {"LastCheckpointTime": last_checkpoint_s * 1000, "TransactionsSinceLastCheckpoint": pending}
    if ha_state:
        fs["HAState"] = ha_state
    return {"metrics": {"dfs": {"FSNamesystem": fs}}}


@pytest.fixture
def checker(context, transport):
    return HttpCheckpointChecker(context, transport, max_age_hours=12, clock=lambda: NOW)


class TestCheckpoint:
    def test_conforms_to_port(self, checker):
        assert isinstance(checker, CheckpointPort)

    @pytest.mark.asyncio
    async def test_recent(self, checker, transport):
        transport.on_get("/clusters/c1/hosts/nn1/host_components/NAMENODE", _nn(NOW - 3600))
        assert await checker.check_last_checkpoint("nn1") is True
        assert "LastCheckpointTime" in transport.gets[0]["params"]["fields"]

    @pytest.mark.asyncio
    async def test_too_old(self, checker, transport):
        transport.on_get("/clusters/c1/hosts/nn1/host_components/NAMENODE", _nn(NOW - 13 * 3600))
        assert await checker.check_last_checkpoint("nn1") is False

    @pytest.mark.asyncio
    async def test_too_many_pending_transactions(self, checker, transport):
        transport.on_get("/clusters/c1/hosts/nn1/host_components/NAMENODE", _nn(NOW - 60, pending=2_000_000))
        assert await checker.check_last_checkpoint("nn1") is False

    @pytest.mark.asyncio
    async def test_lookup_failure_is_not_fresh(self, checker, transport):
        transport.on_get("/clusters/c1/hosts/nn1/host_components/NAMENODE", TransportError("down"))
        assert await checker.check_last_checkpoint("nn1") is False

    @pytest.mark.asyncio
    async def test_ha_uses_active_namenode(self, checker, transport):
        transport.on_get("/clusters/c1/host_components", {"items": [
            _nn(NOW - 60, ha_state="standby"),
            _nn(NOW - 20 * 3600, ha_state="active"),
        ]})
        assert await checker.check_ha_last_checkpoint() is False
        assert transport.gets[0]["predicate"] == "HostRoles/component_name=NAMENODE"

    @pytest.mark.asyncio
    async def test_ha_active_recent(self, checker, transport):
        transport.on_get("/clusters/c1/host_components", {"items": [
            _nn(NOW - 20 * 3600, ha_state="standby"),
            _nn(NOW - 60, ha_state="active"),
        ]})
        assert await checker.check_ha_last_checkpoint() is True


class TestSession:
    def test_conforms_to_port(self, context, transport):
        assert isinstance(HttpSessionChecker(context, transport), SessionPort)

    @pytest.mark.asyncio
    async def test_no_kerberos_service(self, context, transport):
        transport.on_get("/clusters/c1/services/KERBEROS", TransportError("not found", status=404))
        assert await HttpSessionChecker(context, transport).ensure_session_valid() is True

    @pytest.mark.asyncio
    async def test_missing_credentials(self, context, transport):
        transport.on_get("/clusters/c1/services/KERBEROS", {
            "Services": {"attributes": {"kdc_validation_result": "MISSING_CREDENTIALS"}}
        })
        assert await HttpSessionChecker(context, transport).ensure_session_valid() is False

    @pytest.mark.asyncio
    async def test_validated(self, context, transport):
        transport.on_get("/clusters/c1/services/KERBEROS", {
            "Services": {"attributes": {"kdc_validation_result": "OK"}}
        })
        assert await HttpSessionChecker(context, transport).ensure_session_valid() is True

    @pytest.mark.asyncio
    async def test_server_error_is_invalid(self, context, transport):
        transport.on_get("/clusters/c1/services/KERBEROS", TransportError("boom", status=500))
        assert await HttpSessionChecker(context, transport).ensure_session_valid() is False
