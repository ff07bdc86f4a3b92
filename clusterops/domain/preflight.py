"""Preflight gates run before a mutating request.

Each gate is an async step returning a GateResult. ``PreflightGate.run``
awaits the steps in order and stops at the first one that blocks, so the
mutating action only proceeds when every gate passes.
"""

import sys
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from clusterops.domain.cluster_state import BootstrapContext
from clusterops.domain.filter_query import eq, hosts_in
from clusterops.ports.outbound import CheckpointPort, SessionPort, TransportError, TransportPort

Gate = Callable[[], Awaitable["GateResult"]]

NAMENODE = "NAMENODE"
REGIONSERVER = "HBASE_REGIONSERVER"


def _log(msg: str):
    print(msg, file=sys.stderr)


@dataclass
class GateResult:
    passed: bool
    reason: str = ""
    gate: str = ""

    @classmethod
    def ok(cls, gate: str = "") -> "GateResult":
        return cls(passed=True, gate=gate)

    @classmethod
    def block(cls, gate: str, reason: str) -> "GateResult":
        return cls(passed=False, reason=reason, gate=gate)


class PreflightGate:
    """HA-aware safety checks: NameNode checkpoint, active RegionServers, session validity."""

    def __init__(
        self,
        context: BootstrapContext,
        transport: TransportPort,
        checkpoint: CheckpointPort,
        session: SessionPort,
    ):
        self._context = context
        self._transport = transport
        self._checkpoint = checkpoint
        self._session = session

    async def run(self, *gates: Gate) -> GateResult:
        for gate in gates:
            result = await gate()
            if not result.passed:
                _log(f"[preflight] {result.gate} blocked: {result.reason}")
                return result
        return GateResult.ok()

    def namenode_checkpoint(self, namenode_hosts: Sequence[str]) -> Gate:
        """Gate on checkpoint freshness when stopping NameNode(s) of a running HDFS.

        One NameNode uses the single-host check, two (HA) the HA-aware one.
        With HDFS stopped or no NameNode in scope the gate passes at once.
        """
        async def _gate() -> GateResult:
            if not namenode_hosts or not self._context.is_service_started("HDFS"):
                return GateResult.ok("checkpoint")
            if len(namenode_hosts) == 1:
                fresh = await self._checkpoint.check_last_checkpoint(namenode_hosts[0])
            elif len(namenode_hosts) == 2:
                fresh = await self._checkpoint.check_ha_last_checkpoint()
            else:
                return GateResult.ok("checkpoint")
            if fresh:
                return GateResult.ok("checkpoint")
            return GateResult.block("checkpoint", "NameNode checkpoint is not recent")

        return _gate

    def session_valid(self) -> Gate:
        async def _gate() -> GateResult:
            if await self._session.ensure_session_valid():
                return GateResult.ok("session")
            return GateResult.block("session", "Kerberos session is not valid; credentials are required")

        return _gate

    def no_active_region_servers(self, host_names: Sequence[str]) -> Gate:
        """Block when any RegionServer on ``host_names`` is in service and not in maintenance."""
        async def _gate() -> GateResult:
            if not host_names:
                return GateResult.ok("regionserver")
            query = "&".join([
                eq("HostRoles/component_name", REGIONSERVER).render(),
                eq("HostRoles/maintenance_state", "OFF").render(),
                eq("HostRoles/desired_admin_state", "INSERVICE").render(),
                hosts_in(host_names, field="HostRoles/host_name"),
            ])
            try:
                data = await self._transport.get(
                    self._context.cluster_path("/host_components"),
                    predicate=query,
                    params={"minimal_response": "true"},
                )
            except TransportError as e:
                return GateResult.block("regionserver", f"Could not check RegionServer state: {e.message}")
            active = [
                item.get("HostRoles", {}).get("host_name")
                for item in (data or {}).get("items", []) or []
            ]
            if active:
                return GateResult.block(
                    "regionserver",
                    "Active RegionServers must be put into maintenance mode before decommission: "
                    + ", ".join(h for h in active if h),
                )
            return GateResult.ok("regionserver")

        return _gate
