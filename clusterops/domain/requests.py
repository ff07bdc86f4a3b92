"""Mutating request bodies for the cluster API. Pure builders, no I/O."""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from clusterops.domain.filter_query import hosts_in
from clusterops.domain.models import ComponentStatusSnapshot


@dataclass
class MutatingRequest:
    method: str
    path: str  # relative to the cluster resource, e.g. "/host_components"
    body: Dict[str, Any]
    params: Dict[str, str] = field(default_factory=dict)
    # reported when the server answers 200 without creating a request
    no_ops_message: str = ""


def _operation_level(level: str, cluster_name: str, service_name: Optional[str] = None) -> Dict[str, str]:
    op = {"level": level, "cluster_name": cluster_name}
    if service_name:
        op["service_name"] = service_name
    return op


def host_components_update(
    query: str,
    state: str,
    context: str,
    no_ops_message: str = "",
    level: Optional[str] = None,
    cluster_name: Optional[str] = None,
    service_name: Optional[str] = None,
) -> MutatingRequest:
    request_info: Dict[str, Any] = {"context": context, "query": query}
    if level and cluster_name:
        request_info["operation_level"] = _operation_level(level, cluster_name, service_name)
    return MutatingRequest(
        method="PUT",
        path="/host_components",
        body={"RequestInfo": request_info, "Body": {"HostRoles": {"state": state}}},
        no_ops_message=no_ops_message,
    )


def hosts_passive_state(host_names: Sequence[str], state: str, context: str) -> MutatingRequest:
    return MutatingRequest(
        method="PUT",
        path="/hosts",
        body={
            "RequestInfo": {"context": context, "query": hosts_in(host_names)},
            "Body": {"Hosts": {"maintenance_state": state}},
        },
    )


def add_host_components(host_names: Sequence[str], component_name: str) -> MutatingRequest:
    return MutatingRequest(
        method="POST",
        path="/hosts",
        body={
            "RequestInfo": {"query": hosts_in(host_names)},
            "Body": {"host_components": [{"HostRoles": {"component_name": component_name}}]},
        },
    )


def decommission_parameters(slave_name: str, host_names: Sequence[str], recommission: bool) -> Dict[str, str]:
    parameters = {"slave_type": slave_name}
    key = "included_hosts" if recommission else "excluded_hosts"
    parameters[key] = ",".join(host_names)
    return parameters


def decommission(
    service_name: str,
    master_name: str,
    parameters: Dict[str, str],
    context: str,
    no_ops_message: str = "",
) -> MutatingRequest:
    return MutatingRequest(
        method="POST",
        path="/requests",
        body={
            "RequestInfo": {"context": context, "command": "DECOMMISSION", "parameters": parameters},
            "Requests/resource_filters": [{"service_name": service_name, "component_name": master_name}],
        },
        no_ops_message=no_ops_message,
    )


def restart_host_components(
    components: Iterable[ComponentStatusSnapshot],
    context: str,
    level: str,
    cluster_name: str,
    service_for: Callable[[str], Optional[str]],
) -> MutatingRequest:
    """One RESTART request with a resource filter per role."""
    by_component: "OrderedDict[str, List[str]]" = OrderedDict()
    for snap in components:
        hosts = by_component.setdefault(snap.component_name, [])
        if snap.host_name not in hosts:
            hosts.append(snap.host_name)

    filters = []
    for component_name, hosts in by_component.items():
        resource = {"component_name": component_name, "hosts": ",".join(hosts)}
        service_name = service_for(component_name)
        if service_name:
            resource["service_name"] = service_name
        filters.append(resource)

    return MutatingRequest(
        method="POST",
        path="/requests",
        body={
            "RequestInfo": {
                "command": "RESTART",
                "context": context,
                "operation_level": _operation_level(level, cluster_name),
            },
            "Requests/resource_filters": filters,
        },
    )


def delete_hosts(host_names: Sequence[str], dry_run: bool) -> MutatingRequest:
    return MutatingRequest(
        method="DELETE",
        path="/hosts",
        body={"RequestInfo": {"query": hosts_in(host_names)}},
        params={"dry_run": "true"} if dry_run else {},
    )
