"""
Runtime settings for XMaint

Values come from the environment (a .env file is loaded first) and can be
overridden per invocation from the CLI.
"""

import os
from dataclasses import dataclass, replace
from typing import Any

from dotenv import load_dotenv


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


@dataclass(frozen=True)
class MaintenanceSettings:
    """Polling cadence and retry budgets for the maintenance workflow

    A convergence wait times out after retries * poll_interval seconds.
    """
    poll_interval: float = 5.0
    queue_drain_retries: int = 60
    cluster_retries: int = 12
    copy_retries: int = 120
    component_retries: int = 24
    watch_interval: float = 30.0
    watch_workers: int = 8
    requester: str = "Maintenance"

    @classmethod
    def from_env(cls) -> 'MaintenanceSettings':
        load_dotenv()
        return cls(
            poll_interval=_env_float('XMAINT_POLL_INTERVAL', cls.poll_interval),
            queue_drain_retries=_env_int('XMAINT_QUEUE_DRAIN_RETRIES', cls.queue_drain_retries),
            cluster_retries=_env_int('XMAINT_CLUSTER_RETRIES', cls.cluster_retries),
            copy_retries=_env_int('XMAINT_COPY_RETRIES', cls.copy_retries),
            component_retries=_env_int('XMAINT_COMPONENT_RETRIES', cls.component_retries),
            watch_interval=_env_float('XMAINT_WATCH_INTERVAL', cls.watch_interval),
            watch_workers=_env_int('XMAINT_WATCH_WORKERS', cls.watch_workers),
            requester=os.getenv('XMAINT_REQUESTER') or cls.requester,
        )

    def with_overrides(self, **overrides: Any) -> 'MaintenanceSettings':
        """Return a copy with every non-None override applied"""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes) if changes else self
