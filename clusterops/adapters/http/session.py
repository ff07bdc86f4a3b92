"""Kerberos session check against the KERBEROS service attributes."""

import sys

from clusterops.domain.cluster_state import BootstrapContext
from clusterops.ports.outbound import TransportError, TransportPort

KDC_FIELDS = "Services/attributes/kdc_validation_result,Services/attributes/kdc_validation_failure_details"


def _log(msg: str):
    print(msg, file=sys.stderr)


class HttpSessionChecker:
    """SessionPort backed by the cluster REST API.

    A cluster without the KERBEROS service always has a valid session.
    """

    def __init__(self, context: BootstrapContext, transport: TransportPort):
        self._context = context
        self._transport = transport

    async def ensure_session_valid(self) -> bool:
        try:
            data = await self._transport.get(
                self._context.cluster_path("/services/KERBEROS"),
                params={"fields": KDC_FIELDS},
            )
        except TransportError as e:
            if e.status == 404:
                return True
            _log(f"[session] KDC validation lookup failed: {e.message}")
            return False
        attributes = (data or {}).get("Services", {}).get("attributes", {}) or {}
        if attributes.get("kdc_validation_result") == "MISSING_CREDENTIALS":
            _log("[session] KDC credentials are missing")
            return False
        return True
