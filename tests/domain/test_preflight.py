"""Tests for preflight gates."""

import pytest

from clusterops.domain.preflight import GateResult
from clusterops.ports.outbound import TransportError


class TestRun:
    @pytest.mark.asyncio
    async def test_stops_at_first_block(self, preflight):
        calls = []

        async def passing():
            calls.append("pass")
            return GateResult.ok("a")

        async def blocking():
            calls.append("block")
            return GateResult.block("b", "nope")

        async def never():
            calls.append("never")
            return GateResult.ok("c")

        result = await preflight.run(passing, blocking, never)
        assert result.passed is False
        assert result.gate == "b"
        assert calls == ["pass", "block"]

    @pytest.mark.asyncio
    async def test_no_gates_pass(self, preflight):
        assert (await preflight.run()).passed is True


class TestNamenodeCheckpoint:
    @pytest.mark.asyncio
    async def test_single_namenode(self, preflight, checkpoint):
        result = await preflight.run(preflight.namenode_checkpoint(["nn1"]))
        assert result.passed
        checkpoint.check_last_checkpoint.assert_awaited_once_with("nn1")

    @pytest.mark.asyncio
    async def test_ha_pair(self, preflight, checkpoint):
        checkpoint.check_ha_last_checkpoint.return_value = False
        result = await preflight.run(preflight.namenode_checkpoint(["nn1", "nn2"]))
        assert result.passed is False
        assert result.gate == "checkpoint"
        checkpoint.check_last_checkpoint.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_hdfs_stopped_skips_check(self, preflight, context, checkpoint):
        context.service_states["HDFS"] = "INSTALLED"
        result = await preflight.run(preflight.namenode_checkpoint(["nn1"]))
        assert result.passed
        checkpoint.check_last_checkpoint.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_namenode_in_scope(self, preflight, checkpoint):
        assert (await preflight.run(preflight.namenode_checkpoint([]))).passed
        checkpoint.check_last_checkpoint.assert_not_awaited()


class TestSessionValid:
    @pytest.mark.asyncio
    async def test_invalid_session_blocks(self, preflight, session):
        session.ensure_session_valid.return_value = False
        result = await preflight.run(preflight.session_valid())
        assert result.passed is False
        assert result.gate == "session"


class TestRegionServers:
    @pytest.mark.asyncio
    async def test_active_region_server_blocks(self, preflight, transport):
        transport.on_get("/clusters/c1/host_components", {
            "items": [{"HostRoles": {"host_name": "h1", "component_name": "HBASE_REGIONSERVER"}}]
        })
        result = await preflight.run(preflight.no_active_region_servers(["h1", "h2"]))
        assert result.passed is False
        assert "h1" in result.reason
        predicate = transport.gets[0]["predicate"]
        assert "HostRoles/component_name=HBASE_REGIONSERVER" in predicate
        assert "HostRoles/maintenance_state=OFF" in predicate
        assert "HostRoles/desired_admin_state=INSERVICE" in predicate
        assert "HostRoles/host_name.in(h1,h2)" in predicate

    @pytest.mark.asyncio
    async def test_none_active_passes(self, preflight, transport):
        transport.on_get("/clusters/c1/host_components", {"items": []})
        assert (await preflight.run(preflight.no_active_region_servers(["h1"]))).passed

    @pytest.mark.asyncio
    async def test_lookup_failure_blocks(self, preflight, transport):
        transport.on_get("/clusters/c1/host_components", TransportError("down"))
        result = await preflight.run(preflight.no_active_region_servers(["h1"]))
        assert result.passed is False
