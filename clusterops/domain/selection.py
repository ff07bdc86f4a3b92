"""Confirmation summary shown before a bulk operation is dispatched."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from clusterops.domain.models import Action, OperationRequest
from clusterops.domain.snapshots import parse_host_records

MIN_SHOWN = 3


def show_host_names(host_names: Sequence[str], divider: str = "\n", min_shown: int = MIN_SHOWN) -> str:
    """All names when there are at most ``min_shown``, else the first few plus a count."""
    if len(host_names) > min_shown:
        rest = len(host_names) - min_shown
        return divider.join(host_names[:min_shown]) + divider + f"and {rest} other host(s)"
    return divider.join(host_names)


def skipped_for_decommission(payload: Optional[Dict[str, Any]], slave_name: str) -> List[str]:
    """Hosts whose slave role is INSTALLED (stopped) and so cannot be decommissioned."""
    return [
        record.host_name
        for record in parse_host_records(payload, [slave_name])
        if any(s.work_status == "INSTALLED" for s in record.components)
    ]


def skipped_for_passive_state(host_names: Sequence[str], out_of_sync_hosts: Sequence[str]) -> List[str]:
    selected = set(host_names)
    return [h for h in out_of_sync_hosts if h in selected]


@dataclass
class SelectionSummary:
    host_names: List[str]
    skipped: List[str] = field(default_factory=list)
    message: str = ""
    warning: str = ""

    @property
    def visible_hosts(self) -> str:
        return show_host_names(self.host_names)

    @property
    def visible_skipped(self) -> str:
        return show_host_names(self.skipped)


def summarize_selection(
    request: OperationRequest,
    hosts_payload: Optional[Dict[str, Any]],
    out_of_sync_hosts: Sequence[str] = (),
    current_version: str = "",
) -> SelectionSummary:
    names = [r.host_name for r in parse_host_records(hosts_payload)]
    skipped: List[str] = []
    warning = ""
    if request.action == Action.DECOMMISSION:
        skipped = skipped_for_decommission(hosts_payload, request.real_component_name or request.component_name or "")
        warning = "Hosts with the component stopped will be skipped."
    elif request.action == Action.PASSIVE_STATE:
        skipped = skipped_for_passive_state(names, out_of_sync_hosts)
        if request.state == "OFF" and current_version:
            warning = f"Hosts out of sync with version {current_version} stay in maintenance mode."

    if request.component_name:
        message = f"{request.message} {request.display_name} on {len(names)} host(s)"
    else:
        message = f"{request.message} on {len(names)} host(s)"
    return SelectionSummary(host_names=names, skipped=skipped, message=message.strip(), warning=warning)
