"""Load-completion barrier for the cluster bootstrap fetches.

Tracks a fixed set of named tasks and exposes a single ``is_loaded`` flag
that is true iff every task has settled. A task settles whether its fetch
succeeded or failed; entries never go back to false within one barrier.
"""

import asyncio
import sys
from typing import Callable, Dict, Iterable, List, Optional

BOOTSTRAP_TASKS = ("hosts", "runs", "services", "cluster", "racks", "alerts", "users")


def _log(msg: str):
    print(msg, file=sys.stderr)


class LoadBarrier:
    def __init__(self, tasks: Iterable[str] = BOOTSTRAP_TASKS):
        self._status: Dict[str, bool] = {name: False for name in tasks}
        if not self._status:
            raise ValueError("LoadBarrier needs at least one task")
        self._is_loaded = False
        self._listeners: List[Callable[[], None]] = []
        self._event: Optional[asyncio.Event] = None

    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    @property
    def status(self) -> Dict[str, bool]:
        """Copy of the per-task load status."""
        return dict(self._status)

    @property
    def pending(self) -> List[str]:
        return [name for name, done in self._status.items() if not done]

    def mark_done(self, task_name: str) -> bool:
        """Record that ``task_name`` settled. Returns True on the false->true flip of is_loaded."""
        if task_name not in self._status:
            _log(f"[barrier] ignoring unknown task {task_name!r}")
            return False
        self._status[task_name] = True
        if self._is_loaded or not all(self._status.values()):
            return False
        self._is_loaded = True
        if self._event is not None:
            self._event.set()
        for listener in self._listeners:
            listener()
        return True

    def settle_all(self):
        for name in self.pending:
            self.mark_done(name)

    def on_loaded(self, listener: Callable[[], None]):
        """Call ``listener`` once when the barrier flips; immediately if it already has."""
        if self._is_loaded:
            listener()
        else:
            self._listeners.append(listener)

    async def wait(self):
        if self._is_loaded:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()
