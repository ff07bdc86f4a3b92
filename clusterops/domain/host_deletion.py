"""Two-phase host deletion: dry run, then delete the deletable subset."""

import sys
from typing import Any, Dict, Optional, Sequence

from clusterops.domain.issuer import RequestIssuer
from clusterops.domain.models import (
    Deleted,
    DeletionReport,
    OperationOutcome,
    OutcomeKind,
    Undeletable,
)
from clusterops.domain.preflight import PreflightGate
from clusterops.domain.requests import delete_hosts
from clusterops.ports.outbound import ConfirmationPort, TransportError


def _log(msg: str):
    print(msg, file=sys.stderr)


def _entry_host(entry: Dict[str, Any], key: str) -> Optional[str]:
    if entry.get("host_name"):
        return entry["host_name"]
    nested = entry.get(key)
    if isinstance(nested, dict):
        return nested.get("key")
    return None


def partition_delete_result(
    data: Optional[Dict[str, Any]],
    hosts: Sequence[str],
    legacy_empty_as_success: bool = False,
) -> DeletionReport:
    """Split a deleteResult payload into Deleted and Undeletable hosts.

    Entries come either flat (``{host_name, deleted: bool, error}``) or
    keyed (``{deleted: {key}}`` / ``{error: {key, code, message}}``).
    A payload without deleteResult is an error for every targeted host,
    unless ``legacy_empty_as_success`` is set, in which case the first
    targeted host is reported as deleted.
    """
    report = DeletionReport()
    if not data or "deleteResult" not in data:
        if legacy_empty_as_success:
            if hosts:
                report.deleted.append(Deleted(hosts[0]))
        else:
            report.undeletable.extend(
                Undeletable(host, None, "Server returned no delete result") for host in hosts
            )
        return report

    for entry in data.get("deleteResult") or []:
        deleted = entry.get("deleted")
        error = entry.get("error") if isinstance(entry.get("error"), dict) else {}
        if deleted is True or isinstance(deleted, dict):
            host = _entry_host(entry, "deleted")
            if host:
                report.deleted.append(Deleted(host))
            continue
        host = _entry_host(entry, "error")
        if host:
            report.undeletable.append(
                Undeletable(host, error.get("code"), error.get("message", ""))
            )
    return report


def describe_undeletable(undeletable: Sequence[Undeletable]) -> str:
    parts = []
    for u in undeletable:
        reason = f"{u.error_code}: {u.error_message}" if u.error_code is not None else u.error_message
        parts.append(f"{u.host_name} ({reason})" if reason else u.host_name)
    return ", ".join(parts)


class HostDeletionWorkflow:
    def __init__(
        self,
        issuer: RequestIssuer,
        preflight: PreflightGate,
        confirmation: ConfirmationPort,
        legacy_empty_as_success: bool = False,
    ):
        self._issuer = issuer
        self._preflight = preflight
        self._confirmation = confirmation
        self._legacy_empty = legacy_empty_as_success

    async def _delete(self, hosts: Sequence[str], dry_run: bool) -> DeletionReport:
        try:
            response = await self._issuer.send(delete_hosts(hosts, dry_run=dry_run))
        except TransportError as e:
            _log(f"[delete] {'dry run' if dry_run else 'delete'} failed: {e.message}")
            return DeletionReport(undeletable=[Undeletable(host, e.status, e.message) for host in hosts])
        return partition_delete_result(response.data, hosts, self._legacy_empty)

    async def dry_run(self, hosts: Sequence[str]) -> Optional[DeletionReport]:
        """Simulate the delete. None when the session gate blocks."""
        gate = await self._preflight.run(self._preflight.session_valid())
        if not gate.passed:
            return None
        return await self._delete(hosts, dry_run=True)

    async def confirm_delete(self, hosts: Sequence[str]) -> Optional[DeletionReport]:
        gate = await self._preflight.run(self._preflight.session_valid())
        if not gate.passed:
            return None
        return await self._delete(hosts, dry_run=False)

    async def run(self, hosts: Sequence[str]) -> OperationOutcome:
        if not hosts:
            return OperationOutcome.nothing_to_do("hosts")
        preview = await self.dry_run(hosts)
        if preview is None:
            return OperationOutcome.blocked("Kerberos session is not valid; credentials are required")

        if preview.undeletable:
            if not preview.deleted:
                return OperationOutcome(
                    kind=OutcomeKind.FAILED,
                    message=f"{len(preview.undeletable)} host(s) cannot be deleted: {describe_undeletable(preview.undeletable)}",
                    details={"report": preview},
                )
            if not await self._confirmation.confirm_deletion(preview.deleted, preview.undeletable):
                return OperationOutcome(kind=OutcomeKind.CANCELLED, details={"report": preview})
        elif not preview.deleted:
            return OperationOutcome.nothing_to_do("hosts")

        final = await self.confirm_delete(preview.deleted_hosts)
        if final is None:
            return OperationOutcome.blocked("Kerberos session is not valid; credentials are required")
        _log(f"[delete] deleted={final.deleted_hosts} undeletable={[u.host_name for u in final.undeletable]}")
        details = {"report": final, "skipped": preview.undeletable, "undeletable": final.undeletable}
        if not final.deleted:
            return OperationOutcome(
                kind=OutcomeKind.FAILED,
                message=f"No host was deleted: {describe_undeletable(final.undeletable)}",
                details=details,
            )
        message = ""
        if final.undeletable:
            message = f"{len(final.undeletable)} host(s) were not deleted: {describe_undeletable(final.undeletable)}"
        return OperationOutcome(
            kind=OutcomeKind.COMPLETED,
            message=message,
            hosts=final.deleted_hosts,
            details=details,
        )
