"""Routing table for bulk operations.

Keys are ``(scope, action, service)``; ``None`` matches anything. Lookup
goes from the most specific key to the scope default.
"""

from enum import Enum
from typing import Dict, Optional, Tuple

from clusterops.domain.models import Action, OperationRequest, Scope


class Route(str, Enum):
    COMPONENT_RESTART = "component_restart"
    COMPONENT_ADD = "component_add"
    COMPONENT_DECOMMISSION = "component_decommission"
    COMPONENT_STATE = "component_state"
    HOST_RACK_INFO = "host_rack_info"
    HOST_RESTART = "host_restart"
    HOST_REINSTALL = "host_reinstall"
    HOST_PASSIVE_STATE = "host_passive_state"
    HOST_DELETE = "host_delete"
    HOST_STATE = "host_state"


RouteKey = Tuple[Scope, Optional[Action], Optional[str]]

ROUTES: Dict[RouteKey, Route] = {
    (Scope.COMPONENT, Action.RESTART, None): Route.COMPONENT_RESTART,
    (Scope.COMPONENT, Action.ADD, None): Route.COMPONENT_ADD,
    (Scope.COMPONENT, Action.DECOMMISSION, None): Route.COMPONENT_DECOMMISSION,
    (Scope.COMPONENT, Action.RECOMMISSION, None): Route.COMPONENT_DECOMMISSION,
    (Scope.COMPONENT, None, None): Route.COMPONENT_STATE,
    (Scope.HOST, Action.SET_RACK_INFO, None): Route.HOST_RACK_INFO,
    (Scope.HOST, Action.RESTART, None): Route.HOST_RESTART,
    (Scope.HOST, Action.REINSTALL, None): Route.HOST_REINSTALL,
    (Scope.HOST, Action.PASSIVE_STATE, None): Route.HOST_PASSIVE_STATE,
    (Scope.HOST, Action.DELETE, None): Route.HOST_DELETE,
    (Scope.HOST, None, None): Route.HOST_STATE,
}


def resolve_route(request: OperationRequest, routes: Dict[RouteKey, Route] = ROUTES) -> Route:
    scope = request.scope
    for key in (
        (scope, request.action, request.service_name),
        (scope, request.action, None),
        (scope, None, None),
    ):
        if key in routes:
            return routes[key]
    raise LookupError(f"no route for {scope.value} {request.action.value}")
