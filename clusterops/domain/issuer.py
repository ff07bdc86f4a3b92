"""Live-state reads and mutating requests against the current cluster."""

import sys
from typing import List, Optional, Sequence

from clusterops.domain.cluster_state import BootstrapContext
from clusterops.domain.filter_query import FilterQuery
from clusterops.domain.models import HostRecord, OperationOutcome, OutcomeKind
from clusterops.domain.requests import MutatingRequest
from clusterops.domain.snapshots import parse_host_records
from clusterops.ports.outbound import TransportPort, TransportResponse

DEFAULT_NO_OPS_MESSAGE = "All Host Components"


def _log(msg: str):
    print(msg, file=sys.stderr)


class RequestIssuer:
    def __init__(self, context: BootstrapContext, transport: TransportPort):
        self._context = context
        self._transport = transport

    async def read(self, query: FilterQuery, components: Optional[Sequence[str]] = None) -> List[HostRecord]:
        """Fetch fresh host/component state; never cached between operations.

        Raises:
            TransportError: when the read fails.
        """
        payload = await self._transport.get(
            self._context.cluster_path("/hosts"),
            predicate=query.to_predicate(),
            params=query.params(),
        )
        return parse_host_records(payload, components)

    async def send(self, request: MutatingRequest) -> TransportResponse:
        return await self._transport.send(
            request.method,
            self._context.cluster_path(request.path),
            params=request.params or None,
            body=request.body,
        )

    async def issue(self, request: MutatingRequest, hosts: Sequence[str] = ()) -> OperationOutcome:
        """Send ``request`` and classify the response.

        A 200 answer without payload means the server had nothing to do.

        Raises:
            TransportError: when the request fails.
        """
        response = await self.send(request)
        if response.data is None and response.status == 200:
            message = request.no_ops_message or DEFAULT_NO_OPS_MESSAGE
            _log(f"[issuer] {request.method} {request.path}: no operations for {message}")
            return OperationOutcome.nothing_to_do(message)
        request_id = (response.data or {}).get("Requests", {}).get("id")
        _log(f"[issuer] {request.method} {request.path}: request {request_id} created")
        return OperationOutcome(kind=OutcomeKind.ISSUED, request_id=request_id, hosts=list(hosts))
