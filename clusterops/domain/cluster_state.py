"""Bootstrap context, the cluster state one load cycle produces.

Created when a bootstrap starts and replaced on reload, never shared
across cycles. Components that need cluster state receive it explicitly.
"""

from typing import Any, Dict, List, Optional

from clusterops.domain.alerts import nagios_url
from clusterops.domain.load_barrier import BOOTSTRAP_TASKS, LoadBarrier
from clusterops.domain.models import AlertRecord


class BootstrapContext:
    def __init__(self, cluster_name: Optional[str] = None, tasks=BOOTSTRAP_TASKS):
        self.barrier = LoadBarrier(tasks)
        self.cluster: Optional[Dict[str, Any]] = None
        self._cluster_name = cluster_name
        self.services: Optional[Dict[str, Any]] = None
        self.service_states: Dict[str, str] = {}
        self.service_maintenance: Dict[str, str] = {}
        self.component_services: Dict[str, str] = {}
        self.alerts: List[AlertRecord] = []
        self.records: Dict[str, Any] = {}

    @property
    def cluster_name(self) -> Optional[str]:
        if self.cluster:
            return self.cluster.get("Clusters", {}).get("cluster_name") or self._cluster_name
        return self._cluster_name

    @property
    def is_loaded(self) -> bool:
        return self.barrier.is_loaded

    def cluster_path(self, suffix: str = "") -> str:
        if not self.cluster_name:
            raise RuntimeError("cluster name is not known yet")
        return f"/clusters/{self.cluster_name}{suffix}"

    def apply_services(self, payload: Optional[Dict[str, Any]]):
        """Index the merged services payload."""
        self.services = payload
        self.service_states.clear()
        self.service_maintenance.clear()
        self.component_services.clear()
        for svc in (payload or {}).get("items", []) or []:
            info = svc.get("ServiceInfo", {})
            name = info.get("service_name")
            if not name:
                continue
            if info.get("state"):
                self.service_states[name] = info["state"]
            if info.get("maintenance_state"):
                self.service_maintenance[name] = info["maintenance_state"]
            for component in svc.get("components", []) or []:
                component_name = component.get("ServiceComponentInfo", {}).get("component_name")
                if component_name:
                    self.component_services[component_name] = name

    def service_work_status(self, service_name: str) -> Optional[str]:
        return self.service_states.get(service_name)

    def is_service_started(self, service_name: str) -> bool:
        return self.service_work_status(service_name) == "STARTED"

    def is_service_in_maintenance(self, service_name: Optional[str]) -> bool:
        return bool(service_name) and self.service_maintenance.get(service_name) == "ON"

    def service_for_component(self, component_name: str) -> Optional[str]:
        return self.component_services.get(component_name)

    @property
    def nagios_url(self) -> Optional[str]:
        return nagios_url(self.services)

    @property
    def is_nagios_installed(self) -> bool:
        return any(
            svc.get("ServiceInfo", {}).get("service_name") == "NAGIOS"
            for svc in (self.services or {}).get("items", []) or []
        )


class ContextMapper:
    """MapperPort that keeps fetched payloads on the bootstrap context."""

    def __init__(self, context: BootstrapContext):
        self._context = context

    def map(self, kind: str, payload: Any) -> None:
        if kind == "cluster" and isinstance(payload, dict):
            self._context.cluster = payload
        elif kind == "services":
            self._context.apply_services(payload)
        elif kind == "alerts":
            self._context.alerts = list(payload or [])
        self._context.records[kind] = payload
