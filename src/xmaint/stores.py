"""
Capability interfaces consumed by the maintenance workflow

Each interface owns one kind of external state. The workflow components only
talk to the store that owns the resource they change; FleetClient implements
all of them against the fleet management API, and tests provide in-memory fakes.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from .models import (
    ActivationPolicy, Capability, ClusterMembership, ComponentStatus,
    DatabaseCopy, DeliveryClass, NodeInfo,
)


class ComponentStateStore(ABC):

    @abstractmethod
    def get(self, node: str, capability: Capability) -> ComponentStatus:
        pass

    @abstractmethod
    def set(self, node: str, capability: Capability, state: ComponentStatus, requester: str) -> None:
        pass

    @abstractmethod
    def list_states(self, node: str) -> Dict[str, ComponentStatus]:
        """All components of the node, keyed by component name"""
        pass


class ClusterMembershipStore(ABC):

    @abstractmethod
    def get(self, node: str) -> ClusterMembership:
        pass

    @abstractmethod
    def pause(self, node: str) -> None:
        pass

    @abstractmethod
    def resume(self, node: str) -> None:
        pass


class QueueStore(ABC):

    @abstractmethod
    def get_depth(self, node: str, exclude_classes: Iterable[DeliveryClass] = ()) -> int:
        pass

    @abstractmethod
    def redirect(self, node: str, target: str) -> None:
        pass


class DatabaseCopyStore(ABC):

    @abstractmethod
    def list_by_holder(self, node: str) -> List[DatabaseCopy]:
        pass

    @abstractmethod
    def set_activation_policy(self, node: str, policy: ActivationPolicy) -> None:
        pass

    @abstractmethod
    def set_activation_disabled_and_move_now(self, node: str, enabled: bool) -> None:
        pass

    @abstractmethod
    def trigger_move(self, node: str) -> None:
        """Move every active copy on the node to another holder"""
        pass

    @abstractmethod
    def dismount(self, copy: DatabaseCopy) -> None:
        pass

    @abstractmethod
    def mount(self, copy: DatabaseCopy) -> None:
        pass

    @abstractmethod
    def set_mount_at_startup(self, copy: DatabaseCopy, enabled: bool) -> None:
        pass

    @abstractmethod
    def rebalance(self, node: Optional[str] = None) -> None:
        """Activate replicated databases on their most-preferred holder

        With node=None the whole fleet is rebalanced.
        """
        pass


class FleetTopology(ABC):

    @abstractmethod
    def list_nodes(self) -> List[NodeInfo]:
        pass

    def get_node(self, name: str) -> Optional[NodeInfo]:
        for node in self.list_nodes():
            if node.name.lower() == name.lower():
                return node
        return None


class OSControl(ABC):

    @abstractmethod
    def reboot(self, node: str) -> None:
        pass

    @abstractmethod
    def shutdown(self, node: str) -> None:
        pass
