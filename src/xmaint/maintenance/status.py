"""
Status aggregation

Reduces a node's component states to one macro-state. Used as the convergence
oracle by workflow steps and as the per-node data source of the watch view.
"""

from typing import Dict

from ..models import (
    TRACKED_CAPABILITIES, Capability, ComponentStatus, MacroState, MaintenanceStatus,
)
from ..stores import ComponentStateStore


def reduce_macro_state(states: Dict[Capability, ComponentStatus]) -> MacroState:
    """Maintenance iff every tracked capability is Inactive, Connected iff every one is Active"""
    values = [states[capability] for capability in TRACKED_CAPABILITIES]
    if all(value == ComponentStatus.INACTIVE for value in values):
        return MacroState.MAINTENANCE
    if all(value == ComponentStatus.ACTIVE for value in values):
        return MacroState.CONNECTED
    return MacroState.TRANSITIONING


class StatusAggregator:
    """Reads component state for one node and reduces it to a MaintenanceStatus"""

    def __init__(self, components: ComponentStateStore):
        self.components = components

    def get_status(self, node: str) -> MaintenanceStatus:
        """Compute the node's status from live state

        Side-effect-free. UnreachableError propagates unchanged; retrying is the
        caller's business.
        """
        tracked = {capability: self.components.get(node, capability) for capability in TRACKED_CAPABILITIES}
        all_states = self.components.list_states(node)
        active_count = sum(1 for state in all_states.values() if state == ComponentStatus.ACTIVE)

        return MaintenanceStatus(
            node=node,
            macro_state=reduce_macro_state(tracked),
            total_active_components=active_count,
            components=tracked,
        )
