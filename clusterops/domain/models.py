"""Domain data models, pure Python dataclasses."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


class Action(str, Enum):
    """Bulk actions a user can select for hosts or host-components."""

    START = "START"
    STOP = "STOP"
    RESTART = "RESTART"
    INSTALLED = "INSTALLED"
    ADD = "ADD"
    DECOMMISSION = "DECOMMISSION"
    RECOMMISSION = "DECOMMISSION_OFF"
    SET_RACK_INFO = "SET_RACK_INFO"
    PASSIVE_STATE = "PASSIVE_STATE"
    REINSTALL = "REINSTALL"
    DELETE = "DELETE"

    @property
    def target_state(self) -> Optional[str]:
        """HostRoles state a state-change action drives components into."""
        if self is Action.START:
            return "STARTED"
        if self in (Action.STOP, Action.INSTALLED):
            return "INSTALLED"
        return None

    @property
    def is_decommission(self) -> bool:
        return "DECOMMISSION" in self.value

    @property
    def turns_off(self) -> bool:
        # DECOMMISSION_OFF is the recommission direction
        return self.value.endswith("_OFF")


class Scope(str, Enum):
    HOST = "HOST"
    COMPONENT = "COMPONENT"


@dataclass(frozen=True)
class OperationRequest:
    """A user-selected bulk action; component_name set means host-component scope."""

    action: Action
    message: str = ""
    component_name: Optional[str] = None
    real_component_name: Optional[str] = None
    component_name_formatted: Optional[str] = None
    service_name: Optional[str] = None
    state: Optional[str] = None

    @property
    def scope(self) -> Scope:
        return Scope.COMPONENT if self.component_name else Scope.HOST

    @property
    def display_name(self) -> str:
        return self.component_name_formatted or self.component_name or ""


@dataclass(frozen=True)
class HostSelector:
    """Ordered, de-duplicated host names."""

    names: Tuple[str, ...] = ()

    @classmethod
    def of(cls, names: Iterable[str]) -> "HostSelector":
        seen: Dict[str, None] = {}
        for name in names:
            if name and name not in seen:
                seen[name] = None
        return cls(tuple(seen))

    def __iter__(self):
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def __bool__(self) -> bool:
        return bool(self.names)


@dataclass(frozen=True)
class ComponentStatusSnapshot:
    """Live state of one host-component, fetched right before a mutating action."""

    host_name: str
    component_name: str
    work_status: Optional[str] = None
    stale_configs: bool = False
    maintenance_state: Optional[str] = None
    host_maintenance_state: Optional[str] = None


@dataclass(frozen=True)
class HostRecord:
    """One item of a filtered hosts read query."""

    host_name: str
    maintenance_state: Optional[str] = None
    components: Tuple[ComponentStatusSnapshot, ...] = ()


@dataclass
class AlertRecord:
    status: int
    date: Optional[datetime] = None
    title: str = ""
    service_type: str = ""
    host_name: str = ""
    message: str = ""


@dataclass(frozen=True)
class Deleted:
    host_name: str


@dataclass(frozen=True)
class Undeletable:
    host_name: str
    error_code: Optional[int] = None
    error_message: str = ""


@dataclass
class DeletionReport:
    """Per-host partition of a (dry-run) delete response."""

    deleted: List[Deleted] = field(default_factory=list)
    undeletable: List[Undeletable] = field(default_factory=list)

    @property
    def deleted_hosts(self) -> List[str]:
        return [d.host_name for d in self.deleted]


class OutcomeKind(str, Enum):
    ISSUED = "issued"
    NOTHING_TO_DO = "nothing_to_do"
    DELEGATED = "delegated"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class OperationOutcome:
    """Terminal state of one dispatch call."""

    kind: OutcomeKind
    message: str = ""
    request_id: Optional[int] = None
    hosts: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def nothing_to_do(cls, message: str) -> "OperationOutcome":
        return cls(kind=OutcomeKind.NOTHING_TO_DO, message=message)

    @classmethod
    def blocked(cls, message: str) -> "OperationOutcome":
        return cls(kind=OutcomeKind.BLOCKED, message=message)

    @classmethod
    def failed(cls, message: str) -> "OperationOutcome":
        return cls(kind=OutcomeKind.FAILED, message=message)
