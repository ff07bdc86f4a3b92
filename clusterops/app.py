"""FastAPI application and startup wiring."""

import asyncio
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI

from clusterops.adapters.http.ambari_client import AmbariClient
from clusterops.adapters.http.checkpoint import HttpCheckpointChecker
from clusterops.adapters.http.session import HttpSessionChecker
from clusterops.adapters.web.events import EventLog
from clusterops.adapters.web.routes import BulkRuntime, bulk_router, runtime
from clusterops.config import AppConfig, __version__
from clusterops.domain.dispatcher import BulkOperationDispatcher
from clusterops.domain.preflight import PreflightGate
from clusterops.loader import ClusterLoader
from clusterops.ports.outbound import TransportPort

app = FastAPI(title="Cluster Bulk Operations", version=__version__)
app.include_router(bulk_router)

_load_task: Optional[asyncio.Task] = None


def _log(msg: str):
    print(msg, file=sys.stderr)


def build_runtime(config: AppConfig, transport: Optional[TransportPort] = None) -> BulkRuntime:
    """Wire loader, gates and dispatcher around one bootstrap context."""
    transport = transport or AmbariClient(config.ambari)
    loader = ClusterLoader(transport, config.ambari)
    context = loader.context
    events = EventLog()
    preflight = PreflightGate(
        context,
        transport,
        HttpCheckpointChecker(context, transport, config.bulk.checkpoint_max_age_hours),
        HttpSessionChecker(context, transport),
    )
    dispatcher = BulkOperationDispatcher(
        context,
        transport,
        preflight,
        notifications=events,
        confirmation=events,
        recommission=events,
        rack_info=events,
        rolling_restart=events,
        client_components=config.bulk.client_components,
        legacy_empty_delete=config.bulk.legacy_empty_delete,
    )
    return BulkRuntime(loader=loader, dispatcher=dispatcher, transport=transport, events=events)


async def bootstrap(target: BulkRuntime):
    loader = target.loader
    if await loader.load_cluster_name():
        await loader.load_cluster_data()
    _log(f"[app] cluster {loader.cluster_name or '?'} loaded: {loader.context.barrier.status}")


@app.on_event("startup")
async def startup_event():
    global _load_task
    config = AppConfig.from_env()
    wired = build_runtime(config)
    runtime.loader = wired.loader
    runtime.dispatcher = wired.dispatcher
    runtime.transport = wired.transport
    runtime.events = wired.events
    _log(f"[app] Ambari at {config.ambari.base_url}")
    _load_task = asyncio.create_task(bootstrap(runtime))


def main():
    uvicorn.run(app, host="0.0.0.0", port=AppConfig.from_env().port, log_level="info")


if __name__ == "__main__":
    main()
