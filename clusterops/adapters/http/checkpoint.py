"""NameNode checkpoint freshness, read from the NAMENODE host-component metrics."""

import sys
import time
from typing import Any, Dict, Optional

from clusterops.domain.cluster_state import BootstrapContext
from clusterops.domain.filter_query import eq
from clusterops.ports.outbound import TransportError, TransportPort

CHECKPOINT_FIELDS = ",".join([
    "metrics/dfs/FSNamesystem/HAState",
    "metrics/dfs/FSNamesystem/LastCheckpointTime",
    "metrics/dfs/FSNamesystem/TransactionsSinceLastCheckpoint",
])

# More pending edits than this also counts as a stale checkpoint
MAX_TRANSACTIONS_SINCE_CHECKPOINT = 1_000_000


def _log(msg: str):
    print(msg, file=sys.stderr)


def _fs_namesystem(item: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return ((item or {}).get("metrics") or {}).get("dfs", {}).get("FSNamesystem", {}) or {}


class HttpCheckpointChecker:
    """CheckpointPort backed by the cluster REST API."""

    def __init__(
        self,
        context: BootstrapContext,
        transport: TransportPort,
        max_age_hours: float = 12.0,
        clock=time.time,
    ):
        self._context = context
        self._transport = transport
        self._max_age_seconds = max_age_hours * 3600
        self._clock = clock

    def is_fresh(self, fs: Dict[str, Any]) -> bool:
        last = fs.get("LastCheckpointTime")
        if not last:
            return False
        # reported in milliseconds
        age = self._clock() - float(last) / 1000
        if age > self._max_age_seconds:
            return False
        pending = fs.get("TransactionsSinceLastCheckpoint") or 0
        return int(pending) <= MAX_TRANSACTIONS_SINCE_CHECKPOINT

    async def check_last_checkpoint(self, host_name: str) -> bool:
        path = self._context.cluster_path(f"/hosts/{host_name}/host_components/NAMENODE")
        try:
            data = await self._transport.get(path, params={"fields": CHECKPOINT_FIELDS})
        except TransportError as e:
            _log(f"[checkpoint] {host_name}: {e.message}")
            return False
        fresh = self.is_fresh(_fs_namesystem(data))
        _log(f"[checkpoint] {host_name}: {'recent' if fresh else 'stale'}")
        return fresh

    async def check_ha_last_checkpoint(self) -> bool:
        """With HA the active NameNode's checkpoint is the one that counts."""
        try:
            data = await self._transport.get(
                self._context.cluster_path("/host_components"),
                predicate=eq("HostRoles/component_name", "NAMENODE").render(),
                params={"fields": CHECKPOINT_FIELDS},
            )
        except TransportError as e:
            _log(f"[checkpoint] HA lookup failed: {e.message}")
            return False
        items = (data or {}).get("items", []) or []
        active = [i for i in items if _fs_namesystem(i).get("HAState") == "active"]
        candidates = active or items
        if not candidates:
            return False
        fresh = any(self.is_fresh(_fs_namesystem(i)) for i in candidates)
        _log(f"[checkpoint] HA: {'recent' if fresh else 'stale'}")
        return fresh
