"""Outbound ports: interfaces for the server transport and UI collaborators."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from clusterops.domain.models import (
    ComponentStatusSnapshot,
    Deleted,
    OperationRequest,
    Undeletable,
)


class TransportError(Exception):
    """Network failure, timeout, or an HTTP error status from the server."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass
class TransportResponse:
    """Unified result type for mutating requests."""

    status: int
    data: Optional[Dict[str, Any]] = None


@runtime_checkable
class TransportPort(Protocol):
    """Cluster REST API.

    Paths are relative to the API root, e.g. /clusters/c1/hosts. ``predicate``
    is a raw filter expression placed verbatim in the query string.
    """

    async def get(
        self,
        path: str,
        predicate: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]: ...

    async def send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> TransportResponse: ...

    async def get_jsonp(self, url: str, callback_param: str = "jsonp") -> Optional[Dict[str, Any]]: ...


@runtime_checkable
class MapperPort(Protocol):
    """Materializes a fetched payload into the client-side store."""

    def map(self, kind: str, payload: Any) -> None: ...


@runtime_checkable
class CheckpointPort(Protocol):
    """Confirms NameNode checkpoint freshness before the role is stopped."""

    async def check_last_checkpoint(self, host_name: str) -> bool: ...
    async def check_ha_last_checkpoint(self) -> bool: ...


@runtime_checkable
class SessionPort(Protocol):
    """Credential/Kerberos session validity."""

    async def ensure_session_valid(self) -> bool: ...


@runtime_checkable
class NotificationPort(Protocol):
    """User-visible reporting of terminal states."""

    async def show_background_operations(self) -> None: ...
    async def nothing_to_do(self, message: str) -> None: ...
    async def warn(self, message: str) -> None: ...
    async def info_passive_state(self, state: str) -> None: ...


@runtime_checkable
class ConfirmationPort(Protocol):
    """Asks the user to confirm a partial operation."""

    async def confirm_add(
        self,
        request: OperationRequest,
        target_hosts: Sequence[str],
        skipped_hosts: Sequence[str],
    ) -> bool: ...

    async def confirm_deletion(
        self,
        deletable: Sequence[Deleted],
        undeletable: Sequence[Undeletable],
    ) -> bool: ...


@runtime_checkable
class RecommissionPort(Protocol):
    async def recommission_and_start(
        self,
        host_names: Sequence[str],
        service_name: str,
        master_name: str,
        slave_name: str,
    ) -> None: ...


@runtime_checkable
class RackInfoPort(Protocol):
    async def set_rack_info(self, request: OperationRequest, host_names: Sequence[str]) -> None: ...


@runtime_checkable
class RollingRestartPort(Protocol):
    async def rolling_restart(
        self,
        component_name: str,
        service_name: Optional[str],
        service_in_maintenance: bool,
        components: List[ComponentStatusSnapshot],
    ) -> None: ...
