"""
Database copy relocation

Moves active database copies off a node that is leaving service and brings
them back when it returns. Copies of unreplicated databases have no other
holder, so they are dismounted on the way out and mounted on the way back.
"""

import time
from typing import Callable, List

from loguru import logger

from ..models import ActivationPolicy, DatabaseCopy
from ..stores import DatabaseCopyStore
from .polling import PollResult, poll_until


def count_mounted(copies: List[DatabaseCopy]) -> int:
    return sum(1 for copy in copies if copy.is_mounted)


def belongs_mounted_here(copy: DatabaseCopy) -> bool:
    """Copies that should be active on this node once it is back in service"""
    return not copy.is_replicated or copy.is_preferred_here


def relocation_progress(initial: int, remaining: int) -> float:
    """Percent of the initially mounted copies that have moved away"""
    if initial <= 0:
        return 100.0
    return max(0.0, (initial - remaining) / initial * 100)


class DatabaseRelocationCoordinator:
    """Relocates, dismounts and restores the database copies held by a node"""

    def __init__(self, store: DatabaseCopyStore, interval: float, max_retries: int,
                 sleep: Callable[[float], None] = time.sleep):
        self.store = store
        self.interval = interval
        self.max_retries = max_retries
        self.sleep = sleep

    def mounted_count(self, node: str) -> int:
        return count_mounted(self.store.list_by_holder(node))

    # Leaving service

    def is_relocated_away(self, node: str) -> bool:
        copies = self.store.list_by_holder(node)
        return all(
            copy.activation_policy == ActivationPolicy.BLOCKED
            and copy.activation_disabled_and_move_now
            and not copy.is_mounted
            and (copy.is_replicated or not copy.mount_at_startup)
            for copy in copies
        )

    def relocate_away(self, node: str) -> PollResult:
        """Block activation, move active copies away and wait for zero mounted copies

        Raises ConvergenceTimeoutError if copies are still mounted when the
        retry budget is exhausted.
        """
        copies = self.store.list_by_holder(node)
        initial_mounted = count_mounted(copies)

        if any(copy.activation_policy != ActivationPolicy.BLOCKED for copy in copies):
            logger.info(f"Blocking automatic activation of database copies on {node}")
            self.store.set_activation_policy(node, ActivationPolicy.BLOCKED)
        if any(not copy.activation_disabled_and_move_now for copy in copies):
            logger.info(f"Setting activation-disabled-and-move-now on {node}")
            self.store.set_activation_disabled_and_move_now(node, True)

        for copy in copies:
            if copy.is_replicated:
                continue
            if copy.mount_at_startup:
                self.store.set_mount_at_startup(copy, False)
            if copy.is_mounted:
                logger.info(f"Dismounting unreplicated database {copy.database} on {node}")
                self.store.dismount(copy)

        if initial_mounted == 0:
            logger.info(f"No mounted database copies on {node}; nothing to relocate")
            return PollResult(value=0, attempts=0, elapsed=0.0)

        if any(copy.is_mounted and copy.is_replicated for copy in copies):
            logger.info(f"Moving active database copies away from {node}")
            self.store.trigger_move(node)

        def report(attempt: int, remaining) -> None:
            if isinstance(remaining, int):
                progress = relocation_progress(initial_mounted, remaining)
                logger.info(f"{node}: {remaining}/{initial_mounted} copies still mounted ({progress:.0f}% relocated)")

        return poll_until(
            probe=lambda: self.mounted_count(node),
            predicate=lambda remaining: remaining == 0,
            description=f"mounted database copies on {node} to reach 0",
            interval=self.interval,
            max_retries=self.max_retries,
            sleep=self.sleep,
            on_attempt=report,
        )

    # Returning to service

    def is_activation_enabled(self, node: str) -> bool:
        copies = self.store.list_by_holder(node)
        return all(
            copy.activation_policy == ActivationPolicy.UNRESTRICTED
            and not copy.activation_disabled_and_move_now
            for copy in copies
        )

    def enable_activation(self, node: str) -> PollResult:
        """Re-enable unrestricted activation and wait for the flags to propagate"""
        copies = self.store.list_by_holder(node)
        if any(copy.activation_policy != ActivationPolicy.UNRESTRICTED for copy in copies):
            logger.info(f"Allowing unrestricted activation of database copies on {node}")
            self.store.set_activation_policy(node, ActivationPolicy.UNRESTRICTED)
        if any(copy.activation_disabled_and_move_now for copy in copies):
            logger.info(f"Clearing activation-disabled-and-move-now on {node}")
            self.store.set_activation_disabled_and_move_now(node, False)

        return poll_until(
            probe=lambda: self.is_activation_enabled(node),
            predicate=bool,
            description=f"activation policy of {node} to become Unrestricted",
            interval=self.interval,
            max_retries=self.max_retries,
            sleep=self.sleep,
        )

    def is_restored(self, node: str) -> bool:
        copies = self.store.list_by_holder(node)
        return all(copy.is_mounted for copy in copies if belongs_mounted_here(copy))

    def pending_restore(self, node: str) -> int:
        copies = self.store.list_by_holder(node)
        return sum(1 for copy in copies if belongs_mounted_here(copy) and not copy.is_mounted)

    def restore_copies(self, node: str) -> PollResult:
        """Rebalance preferred replicated copies back and mount unreplicated ones"""
        copies = self.store.list_by_holder(node)

        if any(copy.is_replicated and copy.is_preferred_here and not copy.is_mounted for copy in copies):
            logger.info(f"Rebalancing replicated databases preferring {node}")
            self.store.rebalance(node)

        for copy in copies:
            if copy.is_replicated:
                continue
            if not copy.mount_at_startup:
                self.store.set_mount_at_startup(copy, True)
            if not copy.is_mounted:
                logger.info(f"Mounting unreplicated database {copy.database} on {node}")
                self.store.mount(copy)

        return poll_until(
            probe=lambda: self.pending_restore(node),
            predicate=lambda pending: pending == 0,
            description=f"preferred database copies on {node} to mount",
            interval=self.interval,
            max_retries=self.max_retries,
            sleep=self.sleep,
        )

    def relocate_back(self, node: str) -> PollResult:
        """Re-enable activation, then restore the node's preferred copies"""
        self.enable_activation(node)
        return self.restore_copies(node)
