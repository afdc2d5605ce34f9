"""
Data models for fleet nodes, component state, cluster membership and database copies
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Capability(str, Enum):
    """Activatable components tracked for the maintenance macro-state"""
    TRANSPORT = "Transport"
    WIDE_OFFLINE = "WideOffline"


TRACKED_CAPABILITIES = (Capability.TRANSPORT, Capability.WIDE_OFFLINE)


class ComponentStatus(str, Enum):
    ACTIVE = "Active"
    DRAINING = "Draining"
    INACTIVE = "Inactive"


class MembershipState(str, Enum):
    UP = "Up"
    PAUSED = "Paused"
    DOWN = "Down"


class MacroState(str, Enum):
    """Reduced status of a node"""
    CONNECTED = "Connected"
    TRANSITIONING = "Transitioning"
    MAINTENANCE = "Maintenance"


class CopyStatus(str, Enum):
    MOUNTED = "Mounted"
    DISMOUNTED = "Dismounted"
    HEALTHY = "Healthy"
    DEGRADED = "Degraded"
    SEEDING = "Seeding"
    FAILED = "Failed"


class ActivationPolicy(str, Enum):
    UNRESTRICTED = "Unrestricted"
    BLOCKED = "Blocked"


class ReplicationKind(str, Enum):
    REPLICATED = "Replicated"
    NONE = "None"


class DeliveryClass(str, Enum):
    NORMAL = "Normal"
    SHADOW = "Shadow"


@dataclass
class NodeInfo:
    """Information about a fleet node"""
    name: str
    zone: str
    dag: Optional[str] = None
    is_test_host: bool = False
    latency_ms: Optional[float] = None

    @property
    def is_dag_member(self) -> bool:
        return bool(self.dag)

    @property
    def is_reachable(self) -> bool:
        return self.latency_ms is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NodeInfo':
        latency = data.get('latency_ms')
        return cls(
            name=data['name'],
            zone=data.get('zone') or 'unknown',
            dag=data.get('dag') or None,
            is_test_host=bool(data.get('test_host', False)),
            latency_ms=float(latency) if latency is not None else None,
        )


@dataclass
class ClusterMembership:
    """Cluster membership of one node"""
    node: str
    state: MembershipState
    draining: bool = False

    @classmethod
    def from_dict(cls, node: str, data: Dict[str, Any]) -> 'ClusterMembership':
        return cls(
            node=node,
            state=MembershipState(data['state']),
            draining=bool(data.get('draining', False)),
        )


@dataclass
class DatabaseCopy:
    """One copy of a mailbox database held by a node"""
    database: str
    node: str
    status: CopyStatus
    activation_policy: ActivationPolicy = ActivationPolicy.UNRESTRICTED
    activation_disabled_and_move_now: bool = False
    replication: ReplicationKind = ReplicationKind.REPLICATED
    activation_preference: int = 1
    mount_at_startup: bool = True

    @property
    def is_mounted(self) -> bool:
        return self.status == CopyStatus.MOUNTED

    @property
    def is_replicated(self) -> bool:
        return self.replication == ReplicationKind.REPLICATED

    @property
    def is_preferred_here(self) -> bool:
        """This node is the most-preferred holder of the database"""
        return self.activation_preference == 1

    @property
    def identity(self) -> str:
        return f"{self.database}\\{self.node}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DatabaseCopy':
        return cls(
            database=data['database'],
            node=data['node'],
            status=CopyStatus(data['status']),
            activation_policy=ActivationPolicy(data.get('activation_policy', 'Unrestricted')),
            activation_disabled_and_move_now=bool(data.get('activation_disabled_and_move_now', False)),
            replication=ReplicationKind(data.get('replication', 'Replicated')),
            activation_preference=int(data.get('activation_preference', 1)),
            mount_at_startup=bool(data.get('mount_at_startup', True)),
        )


@dataclass
class MaintenanceStatus:
    """Aggregate maintenance status of a node, computed fresh on every poll"""
    node: str
    macro_state: MacroState
    total_active_components: int
    components: Optional[Dict[Capability, ComponentStatus]] = None

    @property
    def in_maintenance(self) -> bool:
        return self.macro_state == MacroState.MAINTENANCE

    @property
    def is_connected(self) -> bool:
        return self.macro_state == MacroState.CONNECTED

    def __str__(self) -> str:
        return f"{self.macro_state.value} ({self.total_active_components} active components)"


@dataclass
class NodeSnapshot:
    """One row of a fleet watch cycle"""
    node: NodeInfo
    status: Optional[MaintenanceStatus] = None
    queue_depth: Optional[int] = None
    mounted_copies: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_reachable(self) -> bool:
        return self.error is None


@dataclass
class FleetSnapshot:
    """Result of one watch cycle across the whole fleet"""
    taken_at: datetime
    cycle: int
    rows: List[NodeSnapshot]

    def count_by_state(self) -> Dict[str, int]:
        counts = {state.value: 0 for state in MacroState}
        counts['Unreachable'] = 0
        for row in self.rows:
            if row.status is None:
                counts['Unreachable'] += 1
            else:
                counts[row.status.macro_state.value] += 1
        return counts
