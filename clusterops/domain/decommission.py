"""Decommission / recommission of slave roles (DataNode, NodeManager, RegionServer...).

Steps:
    1. read live snapshots of the slave role on the selected hosts
    2. nothing found -> nothing to do
    3. recommission: YARN/HBASE/HDFS go to the recommission-and-start
       collaborator, other services have nothing to do
    4. decommission: keep STARTED hosts only; HBASE first passes the
       active-RegionServer gate; then the DECOMMISSION request is issued
"""

import sys
from typing import Sequence

from clusterops.domain.filter_query import build_component_filter
from clusterops.domain.issuer import RequestIssuer
from clusterops.domain.models import OperationOutcome, OperationRequest, OutcomeKind
from clusterops.domain.preflight import PreflightGate
from clusterops.domain.requests import decommission, decommission_parameters
from clusterops.domain.snapshots import flatten
from clusterops.ports.outbound import RecommissionPort

RECOMMISSION_SERVICES = ("YARN", "HBASE", "HDFS")


def _log(msg: str):
    print(msg, file=sys.stderr)


class DecommissionWorkflow:
    def __init__(self, issuer: RequestIssuer, preflight: PreflightGate, recommission: RecommissionPort):
        self._issuer = issuer
        self._preflight = preflight
        self._recommission = recommission

    async def run(self, request: OperationRequest, hosts: Sequence[str]) -> OperationOutcome:
        slave_name = request.real_component_name or request.component_name
        records = await self._issuer.read(
            build_component_filter(
                hosts,
                components=[slave_name],
                passive_state="OFF",
                display_fields=["host_components/HostRoles/state"],
            ),
            components=[slave_name],
        )
        snapshots = flatten(records)
        if not snapshots:
            return OperationOutcome.nothing_to_do(request.display_name)

        service_name = request.service_name or ""
        if request.action.turns_off:
            return await self._recommission_hosts(request, [s.host_name for s in snapshots])

        started = [s.host_name for s in snapshots if s.work_status == "STARTED"]
        if not started:
            _log(f"[decommission] no STARTED {slave_name} on {len(snapshots)} host(s)")
            return OperationOutcome.nothing_to_do(request.display_name)

        if service_name == "HBASE":
            gate = await self._preflight.run(self._preflight.no_active_region_servers(started))
            if not gate.passed:
                return OperationOutcome.blocked(gate.reason)

        return await self.send_decommission(request, started, recommission=False)

    async def _recommission_hosts(self, request: OperationRequest, host_names: Sequence[str]) -> OperationOutcome:
        service_name = request.service_name or ""
        if service_name not in RECOMMISSION_SERVICES:
            _log(f"[decommission] recommission not supported for {service_name or 'unknown service'}")
            return OperationOutcome.nothing_to_do(request.display_name)
        await self._recommission.recommission_and_start(
            host_names,
            service_name,
            request.component_name or "",
            request.real_component_name or "",
        )
        return OperationOutcome(kind=OutcomeKind.DELEGATED, hosts=list(host_names), message="recommission and start")

    async def send_decommission(
        self, request: OperationRequest, host_names: Sequence[str], recommission: bool
    ) -> OperationOutcome:
        slave_name = request.real_component_name or request.component_name or ""
        verb = "recommission" if recommission else "decommission"
        return await self._issuer.issue(
            decommission(
                service_name=request.service_name or "",
                master_name=request.component_name or "",
                parameters=decommission_parameters(slave_name, host_names, recommission),
                context=f"{verb.capitalize()} {slave_name}",
                no_ops_message=request.display_name,
            ),
            hosts=host_names,
        )
