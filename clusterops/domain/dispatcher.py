"""Turns one user bulk action into live-state reads and server requests.

Every path first reads live host/component state and builds the mutating
request only from what the server returned, so hosts that already are in
the target state, or lack the role, are never touched. An empty read is a
nothing-to-do outcome, not an error. Transport failures are converted to a
FAILED outcome here and never escape ``dispatch``.
"""

import sys
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional

from clusterops.config import CLIENT_COMPONENTS
from clusterops.domain.cluster_state import BootstrapContext
from clusterops.domain.decommission import DecommissionWorkflow
from clusterops.domain.filter_query import (
    build_component_filter,
    build_per_host_filter,
    eq,
    hosts_in,
)
from clusterops.domain.host_deletion import HostDeletionWorkflow
from clusterops.domain.issuer import DEFAULT_NO_OPS_MESSAGE, RequestIssuer
from clusterops.domain.models import (
    HostSelector,
    OperationOutcome,
    OperationRequest,
    OutcomeKind,
)
from clusterops.domain.preflight import NAMENODE, PreflightGate
from clusterops.domain.requests import (
    add_host_components,
    host_components_update,
    hosts_passive_state,
    restart_host_components,
)
from clusterops.domain.routing import Route, resolve_route
from clusterops.domain.snapshots import flatten, host_names
from clusterops.ports.outbound import (
    ConfirmationPort,
    NotificationPort,
    RackInfoPort,
    RecommissionPort,
    RollingRestartPort,
    TransportError,
    TransportPort,
)

REINSTALL_NO_OPS_MESSAGE = "Reinstall Failed Components"
RESTART_HOSTS_CONTEXT = "Restart all components on selected hosts"

Handler = Callable[[OperationRequest, List[str]], Awaitable[OperationOutcome]]


def _log(msg: str):
    print(msg, file=sys.stderr)


class BulkOperationDispatcher:
    def __init__(
        self,
        context: BootstrapContext,
        transport: TransportPort,
        preflight: PreflightGate,
        notifications: NotificationPort,
        confirmation: ConfirmationPort,
        recommission: RecommissionPort,
        rack_info: RackInfoPort,
        rolling_restart: RollingRestartPort,
        client_components: Optional[FrozenSet[str]] = None,
        legacy_empty_delete: bool = False,
    ):
        self._context = context
        self._issuer = RequestIssuer(context, transport)
        self._preflight = preflight
        self._notifications = notifications
        self._confirmation = confirmation
        self._rack_info = rack_info
        self._rolling_restart = rolling_restart
        self._clients = client_components if client_components is not None else CLIENT_COMPONENTS
        self.decommission = DecommissionWorkflow(self._issuer, preflight, recommission)
        self.deletion = HostDeletionWorkflow(
            self._issuer, preflight, confirmation, legacy_empty_as_success=legacy_empty_delete
        )
        self._handlers: Dict[Route, Handler] = {
            Route.COMPONENT_RESTART: self._component_restart,
            Route.COMPONENT_ADD: self._component_add,
            Route.COMPONENT_DECOMMISSION: self.decommission.run,
            Route.COMPONENT_STATE: self._component_state,
            Route.HOST_RACK_INFO: self._host_rack_info,
            Route.HOST_RESTART: self._host_restart,
            Route.HOST_REINSTALL: self._host_reinstall,
            Route.HOST_PASSIVE_STATE: self._host_passive_state,
            Route.HOST_DELETE: self._host_delete,
            Route.HOST_STATE: self._host_state,
        }

    async def dispatch(self, request: OperationRequest, hosts: Iterable[str]) -> OperationOutcome:
        selector = HostSelector.of(hosts)
        if not selector:
            outcome = OperationOutcome.nothing_to_do(request.display_name or DEFAULT_NO_OPS_MESSAGE)
        elif not self._context.cluster_name:
            outcome = OperationOutcome.failed("Cluster name is not known yet")
        else:
            route = resolve_route(request)
            _log(f"[dispatch] {request.action.value} on {len(selector)} host(s) via {route.value}")
            try:
                outcome = await self._handlers[route](request, list(selector.names))
            except TransportError as e:
                _log(f"[dispatch] {route.value} failed: {e.message}")
                outcome = OperationOutcome.failed(e.message)
        await self._report(outcome)
        return outcome

    async def _report(self, outcome: OperationOutcome):
        if outcome.kind == OutcomeKind.ISSUED:
            await self._notifications.show_background_operations()
        elif outcome.kind == OutcomeKind.NOTHING_TO_DO:
            await self._notifications.nothing_to_do(outcome.message)
        elif outcome.kind in (OutcomeKind.BLOCKED, OutcomeKind.FAILED):
            await self._notifications.warn(outcome.message)
        elif outcome.kind == OutcomeKind.COMPLETED and "passive_state" in outcome.details:
            await self._notifications.info_passive_state(outcome.details["passive_state"])
        elif outcome.kind == OutcomeKind.COMPLETED and outcome.details.get("undeletable"):
            await self._notifications.warn(outcome.message)

    # -- host-component scope --

    async def _component_state(self, request: OperationRequest, hosts: List[str]) -> OperationOutcome:
        target = request.action.target_state
        if target is None:
            return OperationOutcome.failed(f"{request.action.value} is not a state change")
        name = request.component_name
        records = await self._issuer.read(
            build_component_filter(
                hosts,
                components=[name],
                passive_state="OFF",
                display_fields=["host_components/HostRoles/state"],
            ),
            components=[name],
        )
        candidates = list(OrderedDict.fromkeys(
            s.host_name for s in flatten(records) if s.work_status != target
        ))
        if not candidates:
            return OperationOutcome.nothing_to_do(request.display_name)

        if target == "INSTALLED" and name == NAMENODE:
            gate = await self._preflight.run(self._preflight.namenode_checkpoint(candidates))
            if not gate.passed:
                return OperationOutcome.blocked(gate.reason)

        query = "&".join([
            eq("HostRoles/component_name", name).render(),
            hosts_in(candidates, field="HostRoles/host_name"),
            eq("HostRoles/maintenance_state", "OFF").render(),
        ])
        return await self._issuer.issue(
            host_components_update(
                query,
                target,
                f"{request.message} {request.display_name}".strip(),
                no_ops_message=request.display_name,
                level="SERVICE",
                cluster_name=self._context.cluster_name,
                service_name=request.service_name,
            ),
            hosts=candidates,
        )

    async def _component_restart(self, request: OperationRequest, hosts: List[str]) -> OperationOutcome:
        name = request.component_name
        records = await self._issuer.read(
            build_component_filter(
                hosts,
                components=[name],
                passive_state="OFF",
                display_fields=[
                    "Hosts/maintenance_state",
                    "host_components/HostRoles/stale_configs",
                    "host_components/HostRoles/maintenance_state",
                ],
            ),
            components=[name],
        )
        snapshots = flatten(records)
        if not snapshots:
            return OperationOutcome.nothing_to_do(request.display_name)
        await self._rolling_restart.rolling_restart(
            snapshots[0].component_name,
            request.service_name,
            self._context.is_service_in_maintenance(request.service_name),
            snapshots,
        )
        return OperationOutcome(
            kind=OutcomeKind.DELEGATED,
            message="rolling restart",
            hosts=[s.host_name for s in snapshots],
        )

    async def _component_add(self, request: OperationRequest, hosts: List[str]) -> OperationOutcome:
        name = request.component_name
        records = await self._issuer.read(build_component_filter(hosts, components=[name]), components=[name])
        with_component = set(host_names(records))
        targets = [h for h in hosts if h not in with_component]
        skipped = [h for h in hosts if h in with_component]
        if not targets:
            return OperationOutcome.nothing_to_do(request.display_name)

        if not await self._confirmation.confirm_add(request, targets, skipped):
            return OperationOutcome(kind=OutcomeKind.CANCELLED, hosts=targets)

        gate = await self._preflight.run(self._preflight.session_valid())
        if not gate.passed:
            return OperationOutcome.blocked(gate.reason)

        context = f"{request.message} {request.display_name}".strip()
        await self._issuer.send(add_host_components(targets, name))
        # newly added components start in INIT and need an install request
        outcome = await self._issuer.issue(
            host_components_update("HostRoles/state=INIT", "INSTALLED", context, no_ops_message=request.display_name),
            hosts=targets,
        )
        outcome.details["skipped"] = skipped
        return outcome

    # -- host scope --

    async def _host_state(self, request: OperationRequest, hosts: List[str]) -> OperationOutcome:
        target = request.action.target_state
        if target is None:
            return OperationOutcome.failed(f"{request.action.value} is not a state change")
        records = await self._issuer.read(
            build_component_filter(
                hosts,
                passive_state="OFF",
                display_fields=[
                    "host_components/HostRoles/component_name",
                    "host_components/HostRoles/state",
                ],
            )
        )
        host_map: "OrderedDict[str, List[str]]" = OrderedDict()
        for snap in flatten(records):
            if snap.component_name in self._clients or snap.work_status == target:
                continue
            host_map.setdefault(snap.host_name, []).append(snap.component_name)
        if not host_map:
            return OperationOutcome.nothing_to_do(DEFAULT_NO_OPS_MESSAGE)

        if target == "INSTALLED":
            namenode_hosts = [h for h, names in host_map.items() if NAMENODE in names]
            gate = await self._preflight.run(self._preflight.namenode_checkpoint(namenode_hosts))
            if not gate.passed:
                return OperationOutcome.blocked(gate.reason)

        return await self._issuer.issue(
            host_components_update(
                build_per_host_filter(host_map).to_predicate(),
                target,
                request.message,
                no_ops_message=DEFAULT_NO_OPS_MESSAGE,
            ),
            hosts=list(host_map),
        )

    async def _host_restart(self, request: OperationRequest, hosts: List[str]) -> OperationOutcome:
        records = await self._issuer.read(
            build_component_filter(
                hosts,
                passive_state="OFF",
                display_fields=["host_components/HostRoles/component_name"],
            )
        )
        components = [s for s in flatten(records) if s.component_name not in self._clients]
        if not components:
            return OperationOutcome.nothing_to_do(DEFAULT_NO_OPS_MESSAGE)

        namenode_hosts = [s.host_name for s in components if s.component_name == NAMENODE]
        gate = await self._preflight.run(self._preflight.namenode_checkpoint(namenode_hosts))
        if not gate.passed:
            return OperationOutcome.blocked(gate.reason)

        return await self._issuer.issue(
            restart_host_components(
                components,
                request.message or RESTART_HOSTS_CONTEXT,
                "HOST",
                self._context.cluster_name,
                self._context.service_for_component,
            ),
            hosts=list(OrderedDict.fromkeys(s.host_name for s in components)),
        )

    async def _host_reinstall(self, request: OperationRequest, hosts: List[str]) -> OperationOutcome:
        gate = await self._preflight.run(self._preflight.session_valid())
        if not gate.passed:
            return OperationOutcome.blocked(gate.reason)

        records = await self._issuer.read(
            build_component_filter(
                hosts,
                display_fields=[
                    "host_components/HostRoles/component_name",
                    "host_components/HostRoles/state",
                ],
            )
        )
        host_map: "OrderedDict[str, List[str]]" = OrderedDict()
        for snap in flatten(records):
            if snap.work_status == "INSTALL_FAILED":
                host_map.setdefault(snap.host_name, []).append(snap.component_name)
        if not host_map:
            return OperationOutcome.nothing_to_do(REINSTALL_NO_OPS_MESSAGE)

        return await self._issuer.issue(
            host_components_update(
                build_per_host_filter(host_map).to_predicate(),
                "INSTALLED",
                request.message,
                no_ops_message=REINSTALL_NO_OPS_MESSAGE,
            ),
            hosts=list(host_map),
        )

    async def _host_passive_state(self, request: OperationRequest, hosts: List[str]) -> OperationOutcome:
        if request.state not in ("ON", "OFF"):
            return OperationOutcome.failed(f"invalid passive state {request.state!r}")
        records = await self._issuer.read(
            build_component_filter(hosts, display_fields=["Hosts/maintenance_state"])
        )
        targets = [r.host_name for r in records if r.maintenance_state != request.state]
        if not targets:
            return OperationOutcome.nothing_to_do("All selected hosts are already in the requested passive state")

        await self._issuer.send(hosts_passive_state(targets, request.state, request.message))
        return OperationOutcome(
            kind=OutcomeKind.COMPLETED,
            hosts=targets,
            details={"passive_state": request.state},
        )

    async def _host_rack_info(self, request: OperationRequest, hosts: List[str]) -> OperationOutcome:
        await self._rack_info.set_rack_info(request, hosts)
        return OperationOutcome(kind=OutcomeKind.DELEGATED, message="rack info", hosts=hosts)

    async def _host_delete(self, request: OperationRequest, hosts: List[str]) -> OperationOutcome:
        return await self.deletion.run(hosts)
