"""
Pytest configuration for XMaint tests

Run tests with: uv run pytest tests/
Install test dependencies with: uv sync --extra test

FakeFleet is an in-memory stand-in for FleetClient: it implements every
capability store the workflow consumes, applies state changes immediately
(unless told to get stuck) and records every mutating call.
"""

import os
import random
from dataclasses import replace
from typing import Dict, List, Optional, Set
from unittest.mock import patch

import pytest

from xmaint.config import MaintenanceSettings
from xmaint.exceptions import UnreachableError
from xmaint.models import (
    Capability, ClusterMembership, ComponentStatus, CopyStatus,
    DatabaseCopy, DeliveryClass, MembershipState, NodeInfo, ReplicationKind,
)
from xmaint.stores import (
    ClusterMembershipStore, ComponentStateStore, DatabaseCopyStore,
    FleetTopology, OSControl, QueueStore,
)


class _FakeStore:

    def __init__(self, fleet: 'FakeFleet'):
        self.fleet = fleet


class FakeComponents(_FakeStore, ComponentStateStore):

    def get(self, node, capability):
        self.fleet.check_reachable(node)
        return self.fleet.states[node][capability.value]

    def set(self, node, capability, state, requester):
        self.fleet.check_reachable(node)
        self.fleet.record('components.set', node, capability.value, state.value, requester)
        if capability.value not in self.fleet.stuck_components:
            self.fleet.states[node][capability.value] = state

    def list_states(self, node):
        self.fleet.check_reachable(node)
        return dict(self.fleet.states[node])


class FakeCluster(_FakeStore, ClusterMembershipStore):

    def get(self, node):
        self.fleet.check_reachable(node)
        return replace(self.fleet.membership[node])

    def pause(self, node):
        self.fleet.record('cluster.pause', node)
        if not self.fleet.stuck_membership:
            self.fleet.membership[node] = ClusterMembership(node, MembershipState.PAUSED, draining=True)

    def resume(self, node):
        self.fleet.record('cluster.resume', node)
        if not self.fleet.stuck_membership:
            self.fleet.membership[node] = ClusterMembership(node, MembershipState.UP, draining=False)


class FakeQueues(_FakeStore, QueueStore):

    def get_depth(self, node, exclude_classes=()):
        self.fleet.check_reachable(node)
        depth = self.fleet.queue_depth.get(node, 0)
        if DeliveryClass.SHADOW not in list(exclude_classes):
            depth += self.fleet.shadow_depth.get(node, 0)
        return depth

    def redirect(self, node, target):
        self.fleet.record('queues.redirect', node, target)
        if not self.fleet.stuck_queue:
            moved = self.fleet.queue_depth.get(node, 0)
            self.fleet.queue_depth[node] = 0
            self.fleet.queue_depth[target] = self.fleet.queue_depth.get(target, 0) + moved


class FakeCopies(_FakeStore, DatabaseCopyStore):

    def _find(self, copy: DatabaseCopy) -> DatabaseCopy:
        for held in self.fleet.held_copies[copy.node]:
            if held.database == copy.database:
                return held
        raise KeyError(copy.identity)

    def list_by_holder(self, node):
        self.fleet.check_reachable(node)
        return [replace(copy) for copy in self.fleet.held_copies.get(node, [])]

    def set_activation_policy(self, node, policy):
        self.fleet.record('copies.set_activation_policy', node, policy.value)
        for copy in self.fleet.held_copies.get(node, []):
            copy.activation_policy = policy

    def set_activation_disabled_and_move_now(self, node, enabled):
        self.fleet.record('copies.set_activation_disabled_and_move_now', node, enabled)
        for copy in self.fleet.held_copies.get(node, []):
            copy.activation_disabled_and_move_now = enabled

    def trigger_move(self, node):
        self.fleet.record('copies.trigger_move', node)
        if self.fleet.stuck_copies:
            return
        for copy in self.fleet.held_copies.get(node, []):
            if copy.is_replicated and copy.is_mounted:
                copy.status = CopyStatus.HEALTHY

    def dismount(self, copy):
        self.fleet.record('copies.dismount', copy.identity)
        self._find(copy).status = CopyStatus.DISMOUNTED

    def mount(self, copy):
        self.fleet.record('copies.mount', copy.identity)
        self._find(copy).status = CopyStatus.MOUNTED

    def set_mount_at_startup(self, copy, enabled):
        self.fleet.record('copies.set_mount_at_startup', copy.identity, enabled)
        self._find(copy).mount_at_startup = enabled

    def rebalance(self, node=None):
        self.fleet.record('copies.rebalance', node)
        if self.fleet.rebalance_error is not None:
            raise self.fleet.rebalance_error
        if node is None or self.fleet.stuck_copies:
            return
        for copy in self.fleet.held_copies.get(node, []):
            if copy.is_replicated and copy.is_preferred_here:
                copy.status = CopyStatus.MOUNTED


class FakeTopology(_FakeStore, FleetTopology):

    def list_nodes(self):
        return list(self.fleet.nodes)


class FakeOSControl(_FakeStore, OSControl):

    def reboot(self, node):
        self.fleet.record('os.reboot', node)

    def shutdown(self, node):
        self.fleet.record('os.shutdown', node)


class FakeFleet:
    """In-memory fleet with the same store attributes as FleetClient"""

    def __init__(self):
        self.nodes: List[NodeInfo] = []
        self.states: Dict[str, Dict[str, ComponentStatus]] = {}
        self.membership: Dict[str, ClusterMembership] = {}
        self.queue_depth: Dict[str, int] = {}
        self.shadow_depth: Dict[str, int] = {}
        self.held_copies: Dict[str, List[DatabaseCopy]] = {}
        self.unreachable: Set[str] = set()
        self.mutations: List[tuple] = []

        self.stuck_components: Set[str] = set()
        self.stuck_membership = False
        self.stuck_queue = False
        self.stuck_copies = False
        self.rebalance_error: Optional[Exception] = None

        self.components = FakeComponents(self)
        self.cluster = FakeCluster(self)
        self.queues = FakeQueues(self)
        self.copies = FakeCopies(self)
        self.topology = FakeTopology(self)
        self.os_control = FakeOSControl(self)

    def test_connection(self) -> bool:
        return True

    def add_node(self, name: str, zone: str, dag: Optional[str] = None, state: str = 'Connected',
                 test_host: bool = False, queue: int = 0) -> NodeInfo:
        node = NodeInfo(name=name, zone=zone, dag=dag, is_test_host=test_host, latency_ms=12.0)
        self.nodes.append(node)
        value = ComponentStatus.INACTIVE if state == 'Maintenance' else ComponentStatus.ACTIVE
        self.states[name] = {
            Capability.TRANSPORT.value: value,
            Capability.WIDE_OFFLINE.value: value,
            'Monitoring': ComponentStatus.ACTIVE,
        }
        self.membership[name] = ClusterMembership(
            name, MembershipState.UP if state != 'Maintenance' else MembershipState.PAUSED)
        self.queue_depth[name] = queue
        self.held_copies[name] = []
        return node

    def add_copy(self, node: str, database: str, mounted: bool = True, replicated: bool = True,
                 preference: int = 1) -> DatabaseCopy:
        copy = DatabaseCopy(
            database=database,
            node=node,
            status=CopyStatus.MOUNTED if mounted else CopyStatus.HEALTHY,
            replication=ReplicationKind.REPLICATED if replicated else ReplicationKind.NONE,
            activation_preference=preference,
        )
        self.held_copies[node].append(copy)
        return copy

    def check_reachable(self, node: str) -> None:
        if node in self.unreachable:
            raise UnreachableError(node, "connection refused")

    def record(self, *call) -> None:
        self.mutations.append(call)

    def calls(self, name: str) -> List[tuple]:
        return [call for call in self.mutations if call[0] == name]


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Setup test environment variables"""
    os.environ.setdefault('FLEET_API_URL', 'https://localhost:8443/api')
    yield


@pytest.fixture(autouse=True)
def mock_env_file():
    """Mock the .env file loading"""
    with patch('xmaint.client.load_dotenv'), patch('xmaint.config.load_dotenv'):
        yield


@pytest.fixture
def settings():
    """Small retry budgets so timeouts are reached in a handful of probes"""
    return MaintenanceSettings(
        poll_interval=5.0,
        queue_drain_retries=3,
        cluster_retries=3,
        copy_retries=3,
        component_retries=3,
        watch_interval=1.0,
        watch_workers=4,
    )


@pytest.fixture
def fleet():
    """Two zones; n1 is a DAG member with 50 queued messages and 3 mounted copies

    n2 (zone A) is in maintenance, n3 (zone B) and n4 (zone A) are connected,
    n5 is a standalone node and t1 a test host in zone A.
    """
    fleet = FakeFleet()
    fleet.add_node('n1', 'A', dag='DAG1', queue=50)
    fleet.add_node('n2', 'A', dag='DAG1', state='Maintenance')
    fleet.add_node('n3', 'B', dag='DAG1')
    fleet.add_node('n4', 'A')
    fleet.add_node('n5', 'B', queue=7)
    fleet.add_node('t1', 'A', test_host=True)
    for database in ('DB01', 'DB02', 'DB03'):
        fleet.add_copy('n1', database)
    return fleet


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def no_sleep():
    """Injectable sleep that records the requested intervals"""
    calls = []

    def sleep(seconds):
        calls.append(seconds)

    sleep.calls = calls
    return sleep


@pytest.fixture
def cli_runner():
    """Click CLI test runner"""
    from click.testing import CliRunner
    return CliRunner()
