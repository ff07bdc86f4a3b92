"""Inbound port: UI-agnostic bulk operation submission."""

from dataclasses import dataclass, field
from typing import List

from clusterops.domain.models import Action, HostSelector, OperationRequest


@dataclass
class BulkSubmission:
    """What a UI (web, CLI) hands to the dispatcher for one user action."""

    request: OperationRequest
    host_names: List[str] = field(default_factory=list)

    @property
    def hosts(self) -> HostSelector:
        return HostSelector.of(self.host_names)

    @classmethod
    def from_dict(cls, raw: dict) -> "BulkSubmission":
        req = raw.get("request", {})
        return cls(
            request=OperationRequest(
                action=Action(req["action"]),
                message=req.get("message", ""),
                component_name=req.get("component_name"),
                real_component_name=req.get("real_component_name"),
                component_name_formatted=req.get("component_name_formatted"),
                service_name=req.get("service_name"),
                state=req.get("state"),
            ),
            host_names=list(raw.get("hosts", [])),
        )
