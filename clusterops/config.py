"""Configuration and shared settings."""

__version__ = "0.1.0"

import os
import sys
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from dotenv import load_dotenv

load_dotenv()

_stderr_print = lambda *a, **kw: print(*a, **kw, file=sys.stderr)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        _stderr_print(f"Invalid {name}={raw!r}, falling back to {default}")
        return default


# Client-only roles: nothing runs, so host-level start/stop/restart skips them.
DEFAULT_CLIENT_COMPONENTS = frozenset({
    "HDFS_CLIENT",
    "YARN_CLIENT",
    "MAPREDUCE_CLIENT",
    "MAPREDUCE2_CLIENT",
    "HBASE_CLIENT",
    "HIVE_CLIENT",
    "HCAT",
    "PIG",
    "SQOOP",
    "OOZIE_CLIENT",
    "ZOOKEEPER_CLIENT",
    "TEZ_CLIENT",
    "SPARK_CLIENT",
    "KERBEROS_CLIENT",
    "FALCON_CLIENT",
    "SLIDER",
})

_client_override = os.getenv("CLUSTEROPS_CLIENT_COMPONENTS", "").strip()
CLIENT_COMPONENTS = (
    frozenset(c.strip() for c in _client_override.split(",") if c.strip())
    if _client_override
    else DEFAULT_CLIENT_COMPONENTS
)

CONFIG = {
    "port": int(os.getenv("PORT", "3000")),
    # Ambari server
    "ambari_url": os.getenv("AMBARI_URL", "http://localhost:8080").rstrip("/"),
    "ambari_user": os.getenv("AMBARI_USER", "admin"),
    "ambari_password": os.getenv("AMBARI_PASSWORD", ""),
    "ambari_cluster": os.getenv("AMBARI_CLUSTER", "").strip() or None,
    "request_timeout": _env_float("AMBARI_REQUEST_TIMEOUT", 30.0),
    # Only the cluster-name bootstrap fetch carries its own timeout
    "cluster_name_timeout": _env_float("CLUSTER_NAME_TIMEOUT", 5.0),
    "checkpoint_max_age_hours": _env_float("CHECKPOINT_MAX_AGE_HOURS", 12.0),
    "client_components": CLIENT_COMPONENTS,
    # Treat a delete response without deleteResult as success for the first host
    "legacy_empty_delete": _env_bool("CLUSTEROPS_LEGACY_EMPTY_DELETE", "false"),
}


# ── Typed config ────────────────────────────────────────────


@dataclass
class AmbariConfig:
    base_url: str = "http://localhost:8080"
    username: str = "admin"
    password: str = ""
    cluster_name: Optional[str] = None
    request_timeout: float = 30.0
    cluster_name_timeout: float = 5.0


@dataclass
class BulkOpsConfig:
    client_components: FrozenSet[str] = field(default_factory=lambda: DEFAULT_CLIENT_COMPONENTS)
    checkpoint_max_age_hours: float = 12.0
    legacy_empty_delete: bool = False


@dataclass
class AppConfig:
    """Typed configuration built from CONFIG."""

    port: int = 3000
    ambari: AmbariConfig = field(default_factory=AmbariConfig)
    bulk: BulkOpsConfig = field(default_factory=BulkOpsConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create AppConfig from environment variables."""
        return cls(
            port=CONFIG["port"],
            ambari=AmbariConfig(
                base_url=CONFIG["ambari_url"],
                username=CONFIG["ambari_user"],
                password=CONFIG["ambari_password"],
                cluster_name=CONFIG["ambari_cluster"],
                request_timeout=CONFIG["request_timeout"],
                cluster_name_timeout=CONFIG["cluster_name_timeout"],
            ),
            bulk=BulkOpsConfig(
                client_components=CONFIG["client_components"],
                checkpoint_max_age_hours=CONFIG["checkpoint_max_age_hours"],
                legacy_empty_delete=CONFIG["legacy_empty_delete"],
            ),
        )
