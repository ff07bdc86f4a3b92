"""clusterops: bulk host and host-component operations for Ambari-managed clusters."""

from clusterops.config import CONFIG, AppConfig, __version__
from clusterops.domain.models import Action, OperationOutcome, OperationRequest, OutcomeKind
from clusterops.domain.load_barrier import LoadBarrier
from clusterops.domain.fan_in import FanInJoin
from clusterops.domain.filter_query import build_component_filter
from clusterops.domain.cluster_state import BootstrapContext
from clusterops.domain.preflight import PreflightGate
from clusterops.domain.dispatcher import BulkOperationDispatcher
from clusterops.domain.decommission import DecommissionWorkflow
from clusterops.domain.host_deletion import HostDeletionWorkflow
from clusterops.loader import ClusterLoader
from clusterops.ports.outbound import TransportError

__all__ = [
    "CONFIG",
    "AppConfig",
    "__version__",
    "Action",
    "OperationOutcome",
    "OperationRequest",
    "OutcomeKind",
    "LoadBarrier",
    "FanInJoin",
    "build_component_filter",
    "BootstrapContext",
    "PreflightGate",
    "BulkOperationDispatcher",
    "DecommissionWorkflow",
    "HostDeletionWorkflow",
    "ClusterLoader",
    "TransportError",
]
