"""
Fleet watch

Read-only loop that takes a status snapshot of every node on a fixed cadence.
Node reads run concurrently; a node that cannot be queried shows up as an
error row instead of breaking the cycle.
"""

import concurrent.futures as cf
import threading
from datetime import datetime
from typing import Iterator, List, Optional

from loguru import logger

from ..exceptions import XMaintError
from ..models import DeliveryClass, FleetSnapshot, NodeInfo, NodeSnapshot
from ..stores import DatabaseCopyStore, FleetTopology, QueueStore
from .relocation import count_mounted
from .status import StatusAggregator


class FleetWatcher:
    """Periodically snapshots maintenance status across the fleet"""

    def __init__(self, aggregator: StatusAggregator, topology: FleetTopology,
                 queues: Optional[QueueStore] = None, copies: Optional[DatabaseCopyStore] = None,
                 max_workers: int = 8):
        self.aggregator = aggregator
        self.topology = topology
        self.queues = queues
        self.copies = copies
        self.max_workers = max_workers

    @classmethod
    def from_client(cls, client, max_workers: int = 8) -> 'FleetWatcher':
        return cls(StatusAggregator(client.components), client.topology,
                   queues=client.queues, copies=client.copies, max_workers=max_workers)

    def snapshot_node(self, node: NodeInfo) -> NodeSnapshot:
        row = NodeSnapshot(node=node)
        try:
            row.status = self.aggregator.get_status(node.name)
            if self.queues is not None:
                row.queue_depth = self.queues.get_depth(node.name, exclude_classes=[DeliveryClass.SHADOW])
            if self.copies is not None:
                row.mounted_copies = count_mounted(self.copies.list_by_holder(node.name))
        except XMaintError as e:
            logger.debug(f"Status read for {node.name} failed: {e}")
            row.error = str(e)
        return row

    def snapshot(self, cycle: int = 1) -> FleetSnapshot:
        nodes = self.topology.list_nodes()
        rows: List[NodeSnapshot] = []
        if nodes:
            with cf.ThreadPoolExecutor(max_workers=min(len(nodes), self.max_workers)) as pool:
                rows = list(pool.map(self.snapshot_node, nodes))
        rows.sort(key=lambda row: (row.node.zone, row.node.name.lower()))
        return FleetSnapshot(taken_at=datetime.now(), cycle=cycle, rows=rows)

    def watch(self, interval: float, stop_event: Optional[threading.Event] = None,
              max_cycles: Optional[int] = None) -> Iterator[FleetSnapshot]:
        """Yield a snapshot every interval seconds until stop_event is set

        Setting stop_event interrupts the inter-cycle wait immediately.
        """
        stop_event = stop_event or threading.Event()
        cycle = 0
        while not stop_event.is_set():
            cycle += 1
            yield self.snapshot(cycle)
            if max_cycles is not None and cycle >= max_cycles:
                return
            if stop_event.wait(interval):
                return
