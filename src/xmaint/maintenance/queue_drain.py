"""
Queue drain target planning

Picks the node that receives a draining node's queued messages. Candidates in
the source node's own zone come first to keep redirected mail local; within a
zone the order is shuffled so repeated drains spread their load.
"""

import random
from typing import Dict, List, Optional

from loguru import logger

from ..exceptions import NoEligibleTargetError, UnreachableError
from ..models import NodeInfo
from ..stores import FleetTopology
from .status import StatusAggregator


class QueueDrainPlanner:
    """Computes and validates redirect targets for a draining node"""

    def __init__(self, aggregator: StatusAggregator, rng: Optional[random.Random] = None):
        self.aggregator = aggregator
        self.rng = rng or random.Random()

    def plan_targets(self, node: NodeInfo, topology: FleetTopology) -> List[NodeInfo]:
        """Ordered candidate list: own zone first, then other zones in discovery order

        The source node and test hosts are never candidates.
        """
        zones: Dict[str, List[NodeInfo]] = {}
        for candidate in topology.list_nodes():
            if candidate.name.lower() == node.name.lower():
                continue
            if candidate.is_test_host:
                logger.debug(f"Excluding test host {candidate.name} from redirect candidates")
                continue
            zones.setdefault(candidate.zone, []).append(candidate)

        ordered_zones = [node.zone] if node.zone in zones else []
        ordered_zones += [zone for zone in zones if zone != node.zone]

        candidates: List[NodeInfo] = []
        for zone in ordered_zones:
            members = list(zones[zone])
            self.rng.shuffle(members)
            candidates.extend(members)
        return candidates

    def select_eligible_target(self, node: str, candidates: List[NodeInfo]) -> NodeInfo:
        """Return the first candidate that is not in maintenance

        Unreachable candidates are skipped.

        Raises:
            NoEligibleTargetError: no candidate qualifies (terminal, never retried)
        """
        for candidate in candidates:
            try:
                status = self.aggregator.get_status(candidate.name)
            except UnreachableError as e:
                logger.warning(f"Skipping unreachable redirect candidate {candidate.name}: {e}")
                continue
            if status.in_maintenance:
                logger.debug(f"Skipping redirect candidate {candidate.name}: {status}")
                continue
            logger.info(f"Selected {candidate.name} (zone {candidate.zone}) as redirect target for {node}")
            return candidate

        raise NoEligibleTargetError(node, [c.name for c in candidates])
