"""Tests for the cluster bootstrap loader."""

import copy

import pytest

from clusterops.adapters.web.events import EventLog
from clusterops.config import AmbariConfig
from clusterops.domain.dispatcher import BulkOperationDispatcher
from clusterops.domain.load_barrier import BOOTSTRAP_TASKS
from clusterops.domain.models import Action, OperationRequest, OutcomeKind
from clusterops.domain.preflight import PreflightGate
from clusterops.loader import ClusterLoader
from clusterops.ports.outbound import TransportError

FEED = "http://mon/hdp/nagios/nagios_alerts.php?q1=alerts&alert_type=all"


def _services(namenode_state, with_nagios=True):
    items = [{
        "ServiceInfo": {"service_name": "HDFS", "state": "STARTED"},
        "components": [{"ServiceComponentInfo": {"component_name": "NAMENODE", "state": namenode_state}}],
    }]
    if with_nagios:
        items.append({
            "ServiceInfo": {"service_name": "NAGIOS", "state": "STARTED"},
            "components": [{
                "ServiceComponentInfo": {"component_name": "NAGIOS_SERVER"},
                "host_components": [{"HostRoles": {"host_name": "mon"}}],
            }],
        })
    return {"items": items}


def _serve_cluster(transport, services_a, services_b):
    transport.on_get("/clusters", {"items": [{"Clusters": {"cluster_name": "c1"}}]})
    transport.on_get("/clusters/c1", {"Clusters": {"cluster_name": "c1", "version": "HDP-2.0"}})
    transport.on_get("/clusters/c1/hosts", {"items": [{"Hosts": {"host_name": "h1", "rack_info": "/r1"}}]}, match="rack_info")
    transport.on_get("/clusters/c1/hosts", {"items": [{"Hosts": {"host_name": "h1"}}]})
    transport.on_get("/users/", {"items": []})
    transport.on_get("/jobhistory/workflow", {"workflows": []})
    transport.on_get("/clusters/c1/services", services_a, match="host_components/*")
    transport.on_get("/clusters/c1/services", services_b, match="ServiceComponentInfo")


@pytest.fixture
def loader(transport):
    return ClusterLoader(transport, AmbariConfig(cluster_name_timeout=5.0))


class TestLoadClusterName:
    @pytest.mark.asyncio
    async def test_discovers_first_cluster(self, loader, transport):
        transport.on_get("/clusters", {"items": [{"Clusters": {"cluster_name": "c1"}}, {"Clusters": {"cluster_name": "c2"}}]})
        assert await loader.load_cluster_name() == "c1"
        assert transport.gets[0]["timeout"] == 5.0
        assert loader.context.is_loaded is False

    @pytest.mark.asyncio
    async def test_known_name_not_refetched(self, transport):
        loader = ClusterLoader(transport, AmbariConfig(cluster_name="prod"))
        assert await loader.load_cluster_name() == "prod"
        assert transport.gets == []

    @pytest.mark.asyncio
    async def test_failure_settles_every_task(self, loader, transport):
        transport.on_get("/clusters", TransportError("timeout"))
        assert await loader.load_cluster_name() is None
        assert loader.context.is_loaded is True
        assert all(loader.context.barrier.status.values())

    @pytest.mark.asyncio
    async def test_no_cluster_installed(self, loader, transport):
        transport.on_get("/clusters", {"items": []})
        assert await loader.load_cluster_name() is None
        assert loader.context.is_loaded is True


class TestLoadClusterData:
    @pytest.mark.asyncio
    async def test_full_cycle(self, loader, transport):
        _serve_cluster(transport, _services("X"), _services("X'", with_nagios=False))
        transport.jsonp[FEED] = {"alerts": [
            {"current_state": 1, "last_hard_state_change": 100, "service_description": "low"},
            {"current_state": 2, "last_hard_state_change": 50, "service_description": "high"},
        ]}
        await loader.load_cluster_name()
        await loader.load_cluster_data()

        context = loader.context
        assert context.is_loaded is True
        assert set(context.barrier.status) == set(BOOTSTRAP_TASKS)
        assert context.cluster["Clusters"]["version"] == "HDP-2.0"
        assert context.records["racks"]["items"][0]["Hosts"]["rack_info"] == "/r1"
        namenode = context.services["items"][0]["components"][0]["ServiceComponentInfo"]
        assert namenode["state"] == "X'"
        assert context.is_service_started("HDFS")
        assert context.service_for_component("NAMENODE") == "HDFS"
        assert [a.title for a in context.alerts] == ["high", "low"]
        assert transport.jsonp_calls == [FEED]
        assert loader.services_join.merge_count == 1

    @pytest.mark.asyncio
    async def test_services_predicate(self, loader, transport):
        _serve_cluster(transport, _services("X", with_nagios=False), _services("X"))
        await loader.load_cluster_name()
        await loader.load_cluster_data()
        services_gets = [g for g in transport.gets if g["path"] == "/clusters/c1/services"]
        assert len(services_gets) == 2
        assert all(
            g["predicate"] == "ServiceInfo/service_name!=MISCELLANEOUS&ServiceInfo/service_name!=DASHBOARD"
            for g in services_gets
        )

    @pytest.mark.asyncio
    async def test_failed_fetches_still_settle(self, loader, transport):
        transport.on_get("/clusters", {"items": [{"Clusters": {"cluster_name": "c1"}}]})
        transport.on_get("/clusters/c1/services", TransportError("down"))
        transport.on_get("/users/", TransportError("forbidden", status=403))
        await loader.load_cluster_name()
        await loader.load_cluster_data()
        assert loader.context.is_loaded is True
        assert loader.context.services is None
        assert transport.jsonp_calls == []

    @pytest.mark.asyncio
    async def test_component_fetch_failure_keeps_metrics(self, loader, transport):
        _serve_cluster(transport, _services("X", with_nagios=False), TransportError("down"))
        await loader.load_cluster_name()
        await loader.load_cluster_data()
        namenode = loader.context.services["items"][0]["components"][0]["ServiceComponentInfo"]
        assert namenode["state"] == "X"

    @pytest.mark.asyncio
    async def test_alert_feed_failure_settles(self, loader, transport):
        _serve_cluster(transport, _services("X"), _services("X"))
        transport.jsonp[FEED] = TransportError("nagios down")
        await loader.load_cluster_name()
        await loader.load_cluster_data()
        assert loader.context.is_loaded is True
        assert loader.context.alerts == []

    @pytest.mark.asyncio
    async def test_without_cluster_name(self, loader):
        await loader.load_cluster_data()
        assert loader.context.is_loaded is True


class TestReload:
    @pytest.mark.asyncio
    async def test_reload_replaces_context(self, loader, transport):
        _serve_cluster(transport, _services("X", with_nagios=False), _services("X"))
        await loader.load_cluster_name()
        await loader.load_cluster_data()
        first = loader.context
        second = await loader.reload()
        assert second is loader.context
        assert second is not first
        assert second.is_loaded is True
        assert second.cluster_name == "c1"


def _answer_requested_fields_only(transport):
    """Make services GETs return only the ServiceInfo fields that were asked for."""
    serve = transport.get

    async def get(path, predicate=None, params=None, timeout=None):
        payload = await serve(path, predicate=predicate, params=params, timeout=timeout)
        if not path.endswith("/services") or not isinstance(payload, dict):
            return payload
        requested = {
            field.split("/", 1)[1]
            for field in (params or {}).get("fields", "").split(",")
            if field.startswith("ServiceInfo/")
        }
        payload = copy.deepcopy(payload)
        for svc in payload.get("items", []):
            info = svc.get("ServiceInfo", {})
            svc["ServiceInfo"] = {
                k: v for k, v in info.items() if k in requested or k in ("service_name", "cluster_name")
            }
        return payload

    transport.get = get


def _running_services():
    return {"items": [
        {
            "ServiceInfo": {"service_name": "HDFS", "state": "STARTED", "maintenance_state": "OFF"},
            "components": [{"ServiceComponentInfo": {"component_name": "NAMENODE", "state": "STARTED"}}],
        },
        {
            "ServiceInfo": {"service_name": "HBASE", "state": "STARTED", "maintenance_state": "ON"},
            "components": [{"ServiceComponentInfo": {"component_name": "HBASE_MASTER", "state": "STARTED"}}],
        },
    ]}


class TestServiceState:
    @pytest.mark.asyncio
    async def test_both_projections_request_service_state(self, loader, transport):
        _serve_cluster(transport, _services("X", with_nagios=False), _services("X"))
        await loader.load_cluster_name()
        await loader.load_cluster_data()
        services_gets = [g for g in transport.gets if g["path"] == "/clusters/c1/services"]
        for g in services_gets:
            fields = g["params"]["fields"].split(",")
            assert "ServiceInfo/state" in fields
            assert "ServiceInfo/maintenance_state" in fields

    @pytest.mark.asyncio
    async def test_state_survives_partial_response(self, loader, transport):
        _serve_cluster(transport, _running_services(), _running_services())
        _answer_requested_fields_only(transport)
        await loader.load_cluster_name()
        await loader.load_cluster_data()
        assert loader.context.is_service_started("HDFS")
        assert loader.context.is_service_in_maintenance("HBASE")
        assert not loader.context.is_service_in_maintenance("HDFS")

    @pytest.mark.asyncio
    async def test_namenode_stop_gated_after_bootstrap(self, loader, transport, checkpoint, session):
        checkpoint.check_last_checkpoint.return_value = False
        transport.on_get("/clusters/c1/hosts", {"items": [{
            "Hosts": {"host_name": "nn1", "maintenance_state": "OFF"},
            "host_components": [{"HostRoles": {"component_name": "NAMENODE", "state": "STARTED", "host_name": "nn1"}}],
        }]}, match="NAMENODE")
        _serve_cluster(transport, _running_services(), _running_services())
        _answer_requested_fields_only(transport)
        await loader.load_cluster_name()
        await loader.load_cluster_data()

        events = EventLog()
        dispatcher = BulkOperationDispatcher(
            loader.context,
            transport,
            PreflightGate(loader.context, transport, checkpoint, session),
            notifications=events,
            confirmation=events,
            recommission=events,
            rack_info=events,
            rolling_restart=events,
        )
        request = OperationRequest(action=Action.STOP, component_name="NAMENODE", service_name="HDFS")
        outcome = await dispatcher.dispatch(request, ["nn1"])
        assert outcome.kind == OutcomeKind.BLOCKED
        checkpoint.check_last_checkpoint.assert_awaited_once_with("nn1")
        assert transport.sends == []
