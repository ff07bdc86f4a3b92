"""In-process UI collaborators for the web surface.

A browser-less deployment has no dialogs or wizards, so each UI port here
records what it was asked to do. Confirmations are answered by a fixed
policy; the recorded events are returned to the HTTP caller.
"""

import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from clusterops.domain.models import (
    ComponentStatusSnapshot,
    Deleted,
    OperationRequest,
    Undeletable,
)

MAX_EVENTS = 200


def _log(msg: str):
    print(msg, file=sys.stderr)


@dataclass
class UiEvent:
    kind: str
    message: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())


class EventLog:
    """Notification, confirmation, recommission, rack info and rolling-restart ports."""

    def __init__(self, auto_confirm: bool = True):
        self.auto_confirm = auto_confirm
        self.events: List[UiEvent] = []

    def _record(self, kind: str, message: str = "", **data) -> UiEvent:
        event = UiEvent(kind=kind, message=message, data=data)
        self.events.append(event)
        del self.events[:-MAX_EVENTS]
        _log(f"[ui] {kind}: {message}" if message else f"[ui] {kind}")
        return event

    def since(self, index: int) -> List[UiEvent]:
        return self.events[index:]

    # -- NotificationPort --

    async def show_background_operations(self) -> None:
        self._record("background_operations")

    async def nothing_to_do(self, message: str) -> None:
        self._record("nothing_to_do", f"There are no host components that can be processed: {message}")

    async def warn(self, message: str) -> None:
        self._record("warning", message)

    async def info_passive_state(self, state: str) -> None:
        self._record("passive_state", f"Maintenance mode turned {state}", state=state)

    # -- ConfirmationPort --

    async def confirm_add(
        self,
        request: OperationRequest,
        target_hosts: Sequence[str],
        skipped_hosts: Sequence[str],
    ) -> bool:
        self._record(
            "confirm_add",
            f"Add {request.display_name}",
            hosts=list(target_hosts),
            skipped=list(skipped_hosts),
            confirmed=self.auto_confirm,
        )
        return self.auto_confirm

    async def confirm_deletion(
        self,
        deletable: Sequence[Deleted],
        undeletable: Sequence[Undeletable],
    ) -> bool:
        self._record(
            "confirm_deletion",
            hosts=[d.host_name for d in deletable],
            undeletable=[asdict(u) for u in undeletable],
            confirmed=self.auto_confirm,
        )
        return self.auto_confirm

    # -- delegated workflows --

    async def recommission_and_start(
        self,
        host_names: Sequence[str],
        service_name: str,
        master_name: str,
        slave_name: str,
    ) -> None:
        self._record(
            "recommission",
            f"Recommission {slave_name} via {master_name}",
            hosts=list(host_names),
            service=service_name,
        )

    async def set_rack_info(self, request: OperationRequest, host_names: Sequence[str]) -> None:
        self._record("set_rack_info", hosts=list(host_names))

    async def rolling_restart(
        self,
        component_name: str,
        service_name: Optional[str],
        service_in_maintenance: bool,
        components: List[ComponentStatusSnapshot],
    ) -> None:
        self._record(
            "rolling_restart",
            f"Rolling restart of {component_name}",
            service=service_name,
            service_in_maintenance=service_in_maintenance,
            hosts=[c.host_name for c in components],
        )
