"""
Cluster membership control

Pausing membership is best-effort: the component states, not cluster
membership, decide whether a node is in maintenance.
"""

import time
from typing import Callable

from loguru import logger

from ..models import MembershipState
from ..stores import ClusterMembershipStore
from .polling import PollResult, poll_until


class ClusterMembershipController:
    """Pause/resume a node's cluster membership and wait for it to take effect"""

    def __init__(self, store: ClusterMembershipStore, interval: float, max_retries: int,
                 sleep: Callable[[float], None] = time.sleep):
        self.store = store
        self.interval = interval
        self.max_retries = max_retries
        self.sleep = sleep

    def is_paused(self, node: str) -> bool:
        return self.store.get(node).state != MembershipState.UP

    def is_up(self, node: str) -> bool:
        membership = self.store.get(node)
        return membership.state == MembershipState.UP and not membership.draining

    def pause(self, node: str) -> PollResult:
        """Drain and pause membership; no-op if the node already left Up

        Raises ConvergenceTimeoutError if membership is still Up when the budget
        runs out; callers treat that as a warning.
        """
        if self.is_paused(node):
            logger.info(f"Cluster membership of {node} already paused")
            return PollResult(value=self.store.get(node), attempts=0, elapsed=0.0)

        logger.info(f"Pausing cluster membership of {node}")
        self.store.pause(node)
        return poll_until(
            probe=lambda: self.store.get(node),
            predicate=lambda membership: membership.state != MembershipState.UP,
            description=f"cluster membership of {node} to leave Up",
            interval=self.interval,
            max_retries=self.max_retries,
            sleep=self.sleep,
        )

    def resume(self, node: str) -> PollResult:
        """Resume membership; no-op if the node is already Up"""
        if self.is_up(node):
            logger.info(f"Cluster membership of {node} already up")
            return PollResult(value=self.store.get(node), attempts=0, elapsed=0.0)

        logger.info(f"Resuming cluster membership of {node}")
        self.store.resume(node)
        return poll_until(
            probe=lambda: self.store.get(node),
            predicate=lambda membership: membership.state == MembershipState.UP,
            description=f"cluster membership of {node} to return to Up",
            interval=self.interval,
            max_retries=self.max_retries,
            sleep=self.sleep,
        )
