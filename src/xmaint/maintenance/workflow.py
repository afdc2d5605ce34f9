"""
Maintenance workflow engine

Runs the enter/exit step tables against one node. Steps execute strictly in
order; each one is skipped when the node is already past it, optionally gated
by operator confirmation, executed, and then classified by its timeout policy
if its convergence wait runs out. Nothing is persisted between invocations:
re-running a workflow re-evaluates every step against live state, which is the
recovery path after a warning or an abort.
"""

import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from loguru import logger

from ..config import MaintenanceSettings
from ..exceptions import ConvergenceTimeoutError, PreconditionError, StepDeclinedError, XMaintError
from ..models import MaintenanceStatus, NodeInfo
from ..stores import (
    ClusterMembershipStore, ComponentStateStore, DatabaseCopyStore,
    FleetTopology, OSControl, QueueStore,
)
from .cluster import ClusterMembershipController
from .queue_drain import QueueDrainPlanner
from .relocation import DatabaseRelocationCoordinator
from .status import StatusAggregator
from .steps import (
    STEP_TABLES, Direction, OSAction, StepRun, TimeoutPolicy, WorkflowContext, WorkflowStep,
)


class StepOutcome(str, Enum):
    SKIPPED = "skipped"
    COMPLETED = "completed"
    WARNING = "completed-with-warning"
    ABORTED = "aborted"


@dataclass
class StepResult:
    """Reported outcome of one step, with enough context to diagnose and resume"""
    node: str
    index: int
    total: int
    key: str
    label: str
    outcome: StepOutcome
    message: str
    attempts: int = 0
    elapsed: float = 0.0
    last_observed: Optional[str] = None

    @property
    def position(self) -> str:
        return f"{self.index}/{self.total}"


@dataclass
class WorkflowReport:
    node: str
    direction: Direction
    total_steps: int
    results: List[StepResult] = field(default_factory=list)
    final_status: Optional[MaintenanceStatus] = None

    @property
    def warnings(self) -> List[StepResult]:
        return [r for r in self.results if r.outcome == StepOutcome.WARNING]

    @property
    def aborted(self) -> bool:
        return any(r.outcome == StepOutcome.ABORTED for r in self.results)

    @property
    def skipped(self) -> List[StepResult]:
        return [r for r in self.results if r.outcome == StepOutcome.SKIPPED]

    @property
    def succeeded(self) -> bool:
        return not self.aborted and len(self.results) == self.total_steps


def deny_all(prompt: str) -> bool:
    """Confirmation callback that declines every prompt"""
    return False


class MaintenanceWorkflow:
    """Step sequencer for taking a node into and out of maintenance"""

    def __init__(self,
                 components: ComponentStateStore,
                 cluster_store: ClusterMembershipStore,
                 queues: QueueStore,
                 copies: DatabaseCopyStore,
                 topology: FleetTopology,
                 os_control: OSControl,
                 settings: Optional[MaintenanceSettings] = None,
                 confirm: Callable[[str], bool] = deny_all,
                 reporter: Optional[Callable[[StepResult], None]] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 rng: Optional[random.Random] = None):
        self.components = components
        self.cluster_store = cluster_store
        self.queues = queues
        self.copies = copies
        self.topology = topology
        self.os_control = os_control
        self.settings = settings or MaintenanceSettings()
        self.confirm = confirm
        self.reporter = reporter
        self.sleep = sleep

        self.aggregator = StatusAggregator(components)
        self.planner = QueueDrainPlanner(self.aggregator, rng=rng)
        self.cluster = ClusterMembershipController(
            cluster_store, self.settings.poll_interval, self.settings.cluster_retries, sleep=sleep)
        self.relocation = DatabaseRelocationCoordinator(
            copies, self.settings.poll_interval, self.settings.copy_retries, sleep=sleep)

    @classmethod
    def from_client(cls, client, settings: Optional[MaintenanceSettings] = None, **kwargs) -> 'MaintenanceWorkflow':
        """Build a workflow whose stores all come from one FleetClient"""
        return cls(
            components=client.components,
            cluster_store=client.cluster,
            queues=client.queues,
            copies=client.copies,
            topology=client.topology,
            os_control=client.os_control,
            settings=settings,
            **kwargs,
        )

    def resolve_node(self, node_name: str) -> NodeInfo:
        node = self.topology.get_node(node_name)
        if node is None:
            raise PreconditionError(f"Node '{node_name}' is not part of the managed fleet")
        return node

    def plan_steps(self, direction: Direction, node: NodeInfo) -> Tuple[WorkflowStep, ...]:
        """Steps that apply to this node's shape, in execution order"""
        return tuple(step for step in STEP_TABLES[direction] if step.applies_to(node))

    def enter_maintenance(self, node_name: str, confirm_each_step: bool = False,
                          os_action: OSAction = OSAction.NONE,
                          confirm: Optional[Callable[[str], bool]] = None) -> WorkflowReport:
        """Drain the node and take it out of service"""
        node = self.resolve_node(node_name)
        ctx = WorkflowContext(
            node=node,
            direction=Direction.ENTER,
            confirm=confirm or self.confirm,
            confirm_each_step=confirm_each_step,
            os_action=os_action,
        )
        return self._run(ctx)

    def exit_maintenance(self, node_name: str, confirm_each_step: bool = False,
                         rebalance_fleet: bool = False,
                         confirm: Optional[Callable[[str], bool]] = None) -> WorkflowReport:
        """Return the node to service"""
        node = self.resolve_node(node_name)
        ctx = WorkflowContext(
            node=node,
            direction=Direction.EXIT,
            confirm=confirm or self.confirm,
            confirm_each_step=confirm_each_step,
            rebalance_fleet=rebalance_fleet,
        )
        return self._run(ctx)

    def _run(self, ctx: WorkflowContext) -> WorkflowReport:
        steps = self.plan_steps(ctx.direction, ctx.node)
        report = WorkflowReport(node=ctx.node_name, direction=ctx.direction, total_steps=len(steps))
        shape = f"DAG {ctx.node.dag}" if ctx.node.is_dag_member else "standalone"
        logger.info(f"Starting {ctx.direction.value}-maintenance for {ctx.node_name} ({shape}, {len(steps)} steps)")

        try:
            for index, step in enumerate(steps, 1):
                self._run_step(ctx, step, index, len(steps), report)
            report.final_status = self.aggregator.get_status(ctx.node_name)
        except XMaintError as e:
            e.report = report
            raise

        logger.info(f"Finished {ctx.direction.value}-maintenance for {ctx.node_name}: {report.final_status}")
        return report

    def _run_step(self, ctx: WorkflowContext, step: WorkflowStep, index: int, total: int,
                  report: WorkflowReport) -> None:
        def record(outcome: StepOutcome, message: str, attempts: int = 0, elapsed: float = 0.0,
                   observed: Any = None) -> None:
            result = StepResult(
                node=ctx.node_name, index=index, total=total, key=step.key, label=step.label,
                outcome=outcome, message=message, attempts=attempts, elapsed=elapsed,
                last_observed=str(observed) if observed is not None else None,
            )
            report.results.append(result)
            log = logger.warning if outcome in (StepOutcome.WARNING, StepOutcome.ABORTED) else logger.info
            log(f"[{ctx.node_name}] step {index}/{total} {step.label}: {outcome.value} - {message}")
            if self.reporter:
                self.reporter(result)

        try:
            skip_note = step.check_done(self, ctx)
        except Exception as e:
            record(StepOutcome.ABORTED, f"Could not read current state: {type(e).__name__}: {e}")
            raise

        if skip_note is not None:
            record(StepOutcome.SKIPPED, skip_note)
            return

        if step.destructive and ctx.confirm_each_step:
            if not ctx.confirm(f"Step {index}/{total}: {step.label} on {ctx.node_name}?"):
                record(StepOutcome.ABORTED, "Declined by operator")
                raise StepDeclinedError(ctx.node_name, step.label)

        try:
            run: StepRun = step.run(self, ctx)
        except ConvergenceTimeoutError as e:
            if step.on_timeout == TimeoutPolicy.WARN_AND_CONTINUE:
                record(StepOutcome.WARNING, str(e), e.attempts, e.elapsed, e.last_observed)
                return
            record(StepOutcome.ABORTED, str(e), e.attempts, e.elapsed, e.last_observed)
            raise
        except Exception as e:
            record(StepOutcome.ABORTED, f"{type(e).__name__}: {e}")
            raise

        attempts = run.poll.attempts if run.poll else 0
        elapsed = run.poll.elapsed if run.poll else 0.0
        observed = run.poll.value if run.poll else None
        if run.warning:
            record(StepOutcome.WARNING, f"{run.detail}; {run.warning}", attempts, elapsed, observed)
        else:
            record(StepOutcome.COMPLETED, run.detail, attempts, elapsed, observed)
