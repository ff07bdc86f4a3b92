"""Shared fixtures: an in-memory transport and a wired dispatcher."""

from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import AsyncMock

import pytest

from clusterops.adapters.web.events import EventLog
from clusterops.domain.cluster_state import BootstrapContext
from clusterops.domain.dispatcher import BulkOperationDispatcher
from clusterops.domain.preflight import PreflightGate
from clusterops.ports.outbound import TransportResponse


class FakeTransport:
    """Serves canned GET payloads and records every request.

    A GET route matches on path, and optionally on a substring of the
    predicate or the ``fields`` parameter. Exceptions are raised instead of
    returned.
    """

    def __init__(self):
        self.routes: List[Tuple[str, Optional[str], Any]] = []
        self.gets: List[Dict[str, Any]] = []
        self.sends: List[Dict[str, Any]] = []
        self.responses: List[Any] = []
        self.jsonp: Dict[str, Any] = {}
        self.jsonp_calls: List[str] = []

    def on_get(self, path: str, payload: Any, match: Optional[str] = None):
        self.routes.append((path, match, payload))

    def queue(self, *responses: Any):
        self.responses.extend(responses)

    async def get(self, path, predicate=None, params=None, timeout=None):
        self.gets.append({"path": path, "predicate": predicate, "params": params or {}, "timeout": timeout})
        haystack = (predicate or "") + " " + (params or {}).get("fields", "")
        for route_path, match, payload in self.routes:
            if route_path == path and (match is None or match in haystack):
                if isinstance(payload, BaseException):
                    raise payload
                return payload
        return None

    async def send(self, method, path, params=None, body=None):
        self.sends.append({"method": method, "path": path, "params": params or {}, "body": body})
        if self.responses:
            response = self.responses.pop(0)
        else:
            response = TransportResponse(status=202, data={"Requests": {"id": 1}})
        if isinstance(response, BaseException):
            raise response
        return response

    async def get_jsonp(self, url, callback_param="jsonp"):
        self.jsonp_calls.append(url)
        payload = self.jsonp.get(url)
        if isinstance(payload, BaseException):
            raise payload
        return payload


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def context():
    ctx = BootstrapContext(cluster_name="c1")
    ctx.apply_services({
        "items": [
            {
                "ServiceInfo": {"service_name": "HDFS", "state": "STARTED"},
                "components": [
                    {"ServiceComponentInfo": {"component_name": "NAMENODE"}},
                    {"ServiceComponentInfo": {"component_name": "DATANODE"}},
                    {"ServiceComponentInfo": {"component_name": "HDFS_CLIENT"}},
                ],
            },
            {
                "ServiceInfo": {"service_name": "HBASE", "state": "STARTED", "maintenance_state": "OFF"},
                "components": [
                    {"ServiceComponentInfo": {"component_name": "HBASE_MASTER"}},
                    {"ServiceComponentInfo": {"component_name": "HBASE_REGIONSERVER"}},
                ],
            },
        ]
    })
    return ctx


@pytest.fixture
def checkpoint():
    mock = AsyncMock()
    mock.check_last_checkpoint.return_value = True
    mock.check_ha_last_checkpoint.return_value = True
    return mock


@pytest.fixture
def session():
    mock = AsyncMock()
    mock.ensure_session_valid.return_value = True
    return mock


@pytest.fixture
def preflight(context, transport, checkpoint, session):
    return PreflightGate(context, transport, checkpoint, session)


@pytest.fixture
def events():
    return EventLog(auto_confirm=True)


@pytest.fixture
def dispatcher(context, transport, preflight, events):
    return BulkOperationDispatcher(
        context,
        transport,
        preflight,
        notifications=events,
        confirmation=events,
        recommission=events,
        rack_info=events,
        rolling_restart=events,
        client_components=frozenset({"HDFS_CLIENT"}),
    )
