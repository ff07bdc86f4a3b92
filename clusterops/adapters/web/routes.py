"""Bulk operation API routes."""

from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from clusterops.adapters.web.events import EventLog
from clusterops.domain.dispatcher import BulkOperationDispatcher
from clusterops.domain.filter_query import build_component_filter
from clusterops.domain.models import Action, DeletionReport
from clusterops.domain.selection import summarize_selection
from clusterops.loader import ClusterLoader
from clusterops.ports.inbound import BulkSubmission
from clusterops.ports.outbound import TransportError, TransportPort

bulk_router = APIRouter(prefix="/bulk", tags=["Bulk"])


@dataclass
class BulkRuntime:
    """Collaborators wired at startup; replaced wholesale in tests."""

    loader: Optional[ClusterLoader] = None
    dispatcher: Optional[BulkOperationDispatcher] = None
    transport: Optional[TransportPort] = None
    events: Optional[EventLog] = None


runtime = BulkRuntime()


class OperationRequestModel(BaseModel):
    action: Action
    message: str = ""
    component_name: Optional[str] = None
    real_component_name: Optional[str] = None
    component_name_formatted: Optional[str] = None
    service_name: Optional[str] = None
    state: Optional[str] = None


class OperationBody(BaseModel):
    request: OperationRequestModel
    hosts: List[str]


class SummaryBody(OperationBody):
    out_of_sync_hosts: List[str] = []
    current_version: str = ""


class HostsBody(BaseModel):
    hosts: List[str]


class StatusResponse(BaseModel):
    cluster_name: Optional[str] = None
    is_loaded: bool
    status: Dict[str, bool]


class OperationResponse(BaseModel):
    kind: str
    message: str = ""
    request_id: Optional[int] = None
    hosts: List[str] = []
    details: Dict[str, Any] = {}
    events: List[Dict[str, Any]] = []


class UndeletableModel(BaseModel):
    host_name: str
    error_code: Optional[int] = None
    error_message: str = ""


class DeletionResponse(BaseModel):
    blocked: bool = False
    deleted: List[str] = []
    undeletable: List[UndeletableModel] = []


class SummaryResponse(BaseModel):
    message: str
    hosts: List[str]
    visible_hosts: str
    skipped: List[str] = []
    visible_skipped: str = ""
    warning: str = ""


def _jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return _jsonable(asdict(value))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _deletion_response(report: Optional[DeletionReport]) -> DeletionResponse:
    if report is None:
        return DeletionResponse(blocked=True)
    return DeletionResponse(
        deleted=report.deleted_hosts,
        undeletable=[UndeletableModel(**asdict(u)) for u in report.undeletable],
    )


def _ready_dispatcher() -> BulkOperationDispatcher:
    loader = runtime.loader
    if runtime.dispatcher is None or loader is None or not loader.context.is_loaded:
        raise HTTPException(status_code=503, detail="Cluster data is not loaded yet")
    return runtime.dispatcher


@bulk_router.get("/status", response_model=StatusResponse)
async def bulk_status():
    if runtime.loader is None:
        raise HTTPException(status_code=503, detail="Cluster loader not started")
    context = runtime.loader.context
    return StatusResponse(
        cluster_name=context.cluster_name,
        is_loaded=context.is_loaded,
        status=context.barrier.status,
    )


@bulk_router.post("/operations", response_model=OperationResponse)
async def bulk_operation(body: OperationBody):
    dispatcher = _ready_dispatcher()
    submission = BulkSubmission.from_dict(_jsonable(body.model_dump()))
    mark = len(runtime.events.events) if runtime.events else 0
    outcome = await dispatcher.dispatch(submission.request, submission.host_names)
    events = runtime.events.since(mark) if runtime.events else []
    return OperationResponse(
        kind=outcome.kind.value,
        message=outcome.message,
        request_id=outcome.request_id,
        hosts=outcome.hosts,
        details=_jsonable(outcome.details),
        events=[_jsonable(e) for e in events],
    )


@bulk_router.post("/summary", response_model=SummaryResponse)
async def bulk_summary(body: SummaryBody):
    """Preview of what an operation will touch, for the confirmation step."""
    _ready_dispatcher()
    if not body.hosts:
        raise HTTPException(status_code=422, detail="hosts must not be empty")
    request = BulkSubmission.from_dict(_jsonable(body.model_dump())).request
    component = request.real_component_name or request.component_name
    query = build_component_filter(
        body.hosts,
        components=[component] if component else None,
        display_fields=["host_components/HostRoles/state"] if component else (),
    )
    try:
        payload = await runtime.transport.get(
            runtime.loader.context.cluster_path("/hosts"),
            predicate=query.to_predicate(),
            params=query.params(),
        )
    except TransportError as e:
        raise HTTPException(status_code=502, detail=e.message)
    summary = summarize_selection(request, payload, body.out_of_sync_hosts, body.current_version)
    return SummaryResponse(
        message=summary.message,
        hosts=summary.host_names,
        visible_hosts=summary.visible_hosts,
        skipped=summary.skipped,
        visible_skipped=summary.visible_skipped,
        warning=summary.warning,
    )


@bulk_router.post("/hosts/delete/dry-run", response_model=DeletionResponse)
async def hosts_delete_dry_run(body: HostsBody):
    dispatcher = _ready_dispatcher()
    if not body.hosts:
        return DeletionResponse()
    return _deletion_response(await dispatcher.deletion.dry_run(body.hosts))


@bulk_router.post("/hosts/delete", response_model=DeletionResponse)
async def hosts_delete(body: HostsBody):
    dispatcher = _ready_dispatcher()
    if not body.hosts:
        return DeletionResponse()
    return _deletion_response(await dispatcher.deletion.confirm_delete(body.hosts))
