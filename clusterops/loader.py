"""ClusterLoader: cluster-name discovery and the bootstrap fetch cycle.

Every bootstrap fetch settles its LoadBarrier entry whether it succeeded or
failed, so readiness always resolves. The services entry is fed by two
concurrent projections joined by a FanInJoin.
"""

import asyncio
import sys
from typing import Any, Awaitable, Callable, Optional

from clusterops.config import AmbariConfig
from clusterops.domain.alerts import alerts_feed_url, map_alerts, sort_alerts
from clusterops.domain.cluster_state import BootstrapContext, ContextMapper
from clusterops.domain.fan_in import FanInJoin, JoinResult, merge_service_components
from clusterops.ports.outbound import MapperPort, TransportError, TransportPort

SERVICES_PREDICATE = "ServiceInfo/service_name!=MISCELLANEOUS&ServiceInfo/service_name!=DASHBOARD"
# service run state and maintenance flag feed the checkpoint gate and rolling restart
SERVICE_INFO_FIELDS = "ServiceInfo/state,ServiceInfo/maintenance_state"
SERVICES_METRICS_FIELDS = f"{SERVICE_INFO_FIELDS},components/host_components/*"
SERVICES_COMPONENTS_FIELDS = f"{SERVICE_INFO_FIELDS},components/ServiceComponentInfo"
RACK_FIELDS = "Hosts/host_name,Hosts/rack_info"


def _log(msg: str):
    print(msg, file=sys.stderr)


class ClusterLoader:
    """Fetches the cluster's state into a BootstrapContext."""

    def __init__(
        self,
        transport: TransportPort,
        config: Optional[AmbariConfig] = None,
        context: Optional[BootstrapContext] = None,
        mapper_factory: Callable[[BootstrapContext], MapperPort] = ContextMapper,
    ):
        self._transport = transport
        self._config = config or AmbariConfig()
        self._mapper_factory = mapper_factory
        self.context = context or BootstrapContext(cluster_name=self._config.cluster_name)
        self.mapper = mapper_factory(self.context)
        self.services_join: Optional[FanInJoin] = None

    @property
    def cluster_name(self) -> Optional[str]:
        return self.context.cluster_name

    async def load_cluster_name(self, reload: bool = False) -> Optional[str]:
        """Discover the cluster name; the only fetch with its own timeout.

        When discovery fails every barrier task is settled, since nothing
        cluster-scoped can be fetched without a name.
        """
        if self.context.cluster_name and not reload:
            return self.context.cluster_name
        try:
            data = await self._transport.get("/clusters", timeout=self._config.cluster_name_timeout)
            items = (data or {}).get("items", []) or []
            if not items:
                raise TransportError("no cluster is installed")
            self.mapper.map("cluster", items[0])
        except TransportError as e:
            _log(f"[loader] cluster name lookup failed: {e.message}")
            self.context.barrier.settle_all()
            return None
        _log(f"[loader] cluster name: {self.context.cluster_name}")
        return self.context.cluster_name

    async def load_cluster_data(self):
        """Issue all bootstrap fetches concurrently and wait for them to settle."""
        if not self.context.cluster_name:
            _log("[loader] no cluster name, skipping data load")
            self.context.barrier.settle_all()
            return
        path = self.context.cluster_path
        await asyncio.gather(
            self._settle("cluster", lambda: self._transport.get(path(), params={"fields": "Clusters"})),
            self._settle("hosts", lambda: self._transport.get(path("/hosts"), params={"fields": "*"})),
            self._settle("users", lambda: self._transport.get("/users/", params={"fields": "*"})),
            self._settle("runs", lambda: self._transport.get("/jobhistory/workflow")),
            self._settle("racks", lambda: self._transport.get(path("/hosts"), params={"fields": RACK_FIELDS})),
            self._load_services_and_alerts(),
        )

    async def reload(self) -> BootstrapContext:
        """Start a fresh cycle with a new context; the old one is discarded."""
        self.context = BootstrapContext(cluster_name=self.context.cluster_name)
        self.mapper = self._mapper_factory(self.context)
        self.services_join = None
        if await self.load_cluster_name():
            await self.load_cluster_data()
        return self.context

    async def _settle(self, task: str, fetch: Callable[[], Awaitable[Any]]):
        try:
            payload = await fetch()
            self.mapper.map(task, payload)
        except TransportError as e:
            _log(f"[loader] {task} fetch failed: {e.message}")
        finally:
            self.context.barrier.mark_done(task)

    async def fetch_services(self) -> JoinResult:
        path = self.context.cluster_path("/services")
        join = FanInJoin(merge_service_components)
        self.services_join = join
        result = await join.run(
            lambda: self._transport.get(path, predicate=SERVICES_PREDICATE, params={"fields": SERVICES_METRICS_FIELDS}),
            lambda: self._transport.get(path, predicate=SERVICES_PREDICATE, params={"fields": SERVICES_COMPONENTS_FIELDS}),
        )
        if result.error_a is not None:
            _log(f"[loader] services fetch failed: {result.error_a}")
        elif result.error_b is not None:
            _log(f"[loader] service component fetch failed, using metrics as is: {result.error_b}")
        return result

    async def _load_services_and_alerts(self):
        try:
            result = await self.fetch_services()
            if result.error_a is None:
                self.mapper.map("services", result.value)
        finally:
            self.context.barrier.mark_done("services")
        await self.load_alerts()

    async def load_alerts(self):
        url = self.context.nagios_url
        if not url:
            self.context.barrier.mark_done("alerts")
            return
        try:
            payload = await self._transport.get_jsonp(alerts_feed_url(url), callback_param="jsonp")
            self.mapper.map("alerts", sort_alerts(map_alerts(payload)))
        except (TransportError, ValueError) as e:
            _log(f"[loader] alerts fetch failed: {e}")
        finally:
            self.context.barrier.mark_done("alerts")
