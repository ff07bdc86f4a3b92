"""Read-query response shaping: host items -> HostRecord / ComponentStatusSnapshot."""

from typing import Any, Dict, Iterable, List, Optional

from clusterops.domain.models import ComponentStatusSnapshot, HostRecord


def parse_host_records(
    payload: Optional[Dict[str, Any]],
    components: Optional[Iterable[str]] = None,
) -> List[HostRecord]:
    """Shape a filtered hosts response.

    Host-components whose role is not in ``components`` are dropped, so a
    host that lacks the target role contributes no snapshots.
    """
    wanted = set(components) if components else None
    records = []
    for item in (payload or {}).get("items", []) or []:
        host_info = item.get("Hosts", {})
        host_name = host_info.get("host_name")
        if not host_name:
            continue
        host_mm = host_info.get("maintenance_state")
        snapshots = []
        for hc in item.get("host_components", []) or []:
            roles = hc.get("HostRoles", {})
            name = roles.get("component_name")
            if not name or (wanted is not None and name not in wanted):
                continue
            snapshots.append(
                ComponentStatusSnapshot(
                    host_name=host_name,
                    component_name=name,
                    work_status=roles.get("state"),
                    stale_configs=bool(roles.get("stale_configs", False)),
                    maintenance_state=roles.get("maintenance_state"),
                    host_maintenance_state=host_mm,
                )
            )
        records.append(HostRecord(host_name=host_name, maintenance_state=host_mm, components=tuple(snapshots)))
    return records


def flatten(records: Iterable[HostRecord]) -> List[ComponentStatusSnapshot]:
    return [snap for record in records for snap in record.components]


def host_names(records: Iterable[HostRecord]) -> List[str]:
    return [record.host_name for record in records]
