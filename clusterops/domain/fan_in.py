"""Two-input fan-in join and the service-component status overlay.

The join owns two write-once slots. Each completion handler stores its
outcome and then checks whether both slots are filled; whichever handler
fills the second slot performs the merge, so the merge runs exactly once
whatever the completion order. A failed fetch fills its slot with the
exception, which keeps the join from stalling.
"""

import asyncio
import copy
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Tuple, TypeVar

A = TypeVar("A")
B = TypeVar("B")
R = TypeVar("R")

_EMPTY = object()


@dataclass
class JoinResult(Generic[R]):
    value: Optional[R] = None
    error_a: Optional[BaseException] = None
    error_b: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error_a is None and self.error_b is None


class FanInJoin(Generic[A, B, R]):
    """Runs ``merge(a, b)`` once both inputs have settled.

    ``merge`` receives ``None`` for a side that failed; the failure is
    reported on the JoinResult. When side A fails there is nothing to merge
    into and ``merge`` is skipped.
    """

    def __init__(self, merge: Callable[[A, Optional[B]], R]):
        self._merge = merge
        self._slot_a: Any = _EMPTY
        self._slot_b: Any = _EMPTY
        self._merge_count = 0
        self.result: Optional[JoinResult[R]] = None

    @property
    def merge_count(self) -> int:
        return self._merge_count

    @property
    def settled(self) -> bool:
        return self._slot_a is not _EMPTY and self._slot_b is not _EMPTY

    def complete_a(self, outcome: Any):
        """Store fetch A's payload (or exception) and merge if B is already in."""
        if self._slot_a is not _EMPTY:
            return
        self._slot_a = outcome
        self._maybe_merge()

    def complete_b(self, outcome: Any):
        if self._slot_b is not _EMPTY:
            return
        self._slot_b = outcome
        self._maybe_merge()

    def _maybe_merge(self):
        if not self.settled or self._merge_count:
            return
        self._merge_count += 1
        result: JoinResult[R] = JoinResult()
        a, b = self._slot_a, self._slot_b
        if isinstance(b, BaseException):
            result.error_b = b
            b = None
        if isinstance(a, BaseException):
            result.error_a = a
        else:
            try:
                result.value = self._merge(a, b)
            except Exception as e:
                result.error_a = e
        self.result = result

    async def run(self, fetch_a: Callable[[], Awaitable[A]], fetch_b: Callable[[], Awaitable[B]]) -> JoinResult[R]:
        """Issue both fetches concurrently and return the merged result."""
        async def _drive(fetch, complete):
            try:
                outcome = await fetch()
            except Exception as e:
                outcome = e
            complete(outcome)

        await asyncio.gather(_drive(fetch_a, self.complete_a), _drive(fetch_b, self.complete_b))
        return self.result


# (service type, single-instance master role) whose status block fetch B corrects
STATUS_OVERLAY_COMPONENTS: Tuple[Tuple[str, str], ...] = (
    ("HDFS", "NAMENODE"),
    ("MAPREDUCE", "JOBTRACKER"),
    ("HBASE", "HBASE_MASTER"),
)


def _find_component(payload: Optional[Dict[str, Any]], service_name: str, component_name: str) -> Optional[Dict[str, Any]]:
    if not payload:
        return None
    service = next(
        (svc for svc in payload.get("items", []) or []
         if svc.get("ServiceInfo", {}).get("service_name") == service_name),
        None,
    )
    if service is None:
        return None
    return next(
        (component for component in service.get("components", []) or []
         if component.get("ServiceComponentInfo", {}).get("component_name") == component_name),
        None,
    )


def merge_service_components(
    metrics: Dict[str, Any],
    service_components: Optional[Dict[str, Any]],
    overlay: Tuple[Tuple[str, str], ...] = STATUS_OVERLAY_COMPONENTS,
) -> Dict[str, Any]:
    """Overlay ServiceComponentInfo from the second projection onto the first.

    Returns a new payload; neither input is modified. Services or roles
    missing on either side are skipped.
    """
    merged = copy.deepcopy(metrics)
    if not service_components:
        return merged
    for service_name, component_name in overlay:
        target = _find_component(merged, service_name, component_name)
        source = _find_component(service_components, service_name, component_name)
        if target is not None and source is not None:
            target["ServiceComponentInfo"] = copy.deepcopy(source.get("ServiceComponentInfo"))
    return merged

