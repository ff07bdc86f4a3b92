"""Monitoring alerts: Nagios URL discovery, feed mapping, and ordering."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from clusterops.domain.models import AlertRecord

NAGIOS_SERVICE = "NAGIOS"
NAGIOS_SERVER = "NAGIOS_SERVER"
ALERTS_PATH = "/hdp/nagios/nagios_alerts.php?q1=alerts&alert_type=all"


def nagios_url(services_payload: Optional[Dict[str, Any]]) -> Optional[str]:
    """URL of the Nagios server, or None when Nagios is not installed."""
    for svc in (services_payload or {}).get("items", []) or []:
        if svc.get("ServiceInfo", {}).get("service_name") != NAGIOS_SERVICE:
            continue
        for component in svc.get("components", []) or []:
            if component.get("ServiceComponentInfo", {}).get("component_name") != NAGIOS_SERVER:
                continue
            for hc in component.get("host_components", []) or []:
                host_name = hc.get("HostRoles", {}).get("host_name")
                if host_name:
                    return f"http://{host_name}/nagios"
    return None


def alerts_feed_url(nagios: str) -> str:
    last_slash = nagios.rfind("/")
    base = nagios[:last_slash] if last_slash > -1 else nagios
    return base + ALERTS_PATH


def _timestamp(value: Any) -> Optional[datetime]:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if seconds <= 0:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def map_alerts(payload: Optional[Dict[str, Any]]) -> List[AlertRecord]:
    alerts = []
    for raw in (payload or {}).get("alerts", []) or []:
        try:
            status = int(raw.get("current_state", 0))
        except (TypeError, ValueError):
            status = 0
        alerts.append(
            AlertRecord(
                status=status,
                date=_timestamp(raw.get("last_hard_state_change")),
                title=raw.get("service_description", ""),
                service_type=raw.get("service_type", ""),
                host_name=raw.get("host_name", ""),
                message=raw.get("plugin_output", ""),
            )
        )
    return alerts


def sort_alerts(alerts: Iterable[AlertRecord]) -> List[AlertRecord]:
    """Severity descending, then most recent first; undated alerts sort as oldest."""
    return sorted(
        alerts,
        key=lambda a: (-a.status, -(a.date.timestamp() if a.date else 0)),
    )
