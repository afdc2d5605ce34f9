"""
Maintenance workflow steps

Each step is a stateless descriptor: an idempotency check that returns a skip
note when the node is already past the step, and a run function that issues
the action and waits for it to converge. The two tables below are the single
place where step order, DAG applicability and timeout policy are declared.

Timeout policies:

    enter  drain-transport          Abort
    enter  redirect-queue           WarnAndContinue (no eligible target always aborts)
    enter  suspend-membership  DAG  WarnAndContinue
    enter  relocate-copies     DAG  WarnAndContinue
    enter  components-offline       Abort
    enter  confirm-maintenance      Abort
    exit   components-active        Abort
    exit   resume-membership   DAG  WarnAndContinue
    exit   enable-auto-activation DAG WarnAndContinue
    exit   restore-copies           WarnAndContinue
    exit   confirm-connected        WarnAndContinue
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from loguru import logger

from ..exceptions import XMaintError
from ..models import Capability, ComponentStatus, DeliveryClass, MacroState, NodeInfo
from .polling import PollResult, poll_until


class Direction(str, Enum):
    ENTER = "enter"
    EXIT = "exit"


class TimeoutPolicy(str, Enum):
    WARN_AND_CONTINUE = "WarnAndContinue"
    ABORT = "Abort"


class OSAction(str, Enum):
    NONE = "none"
    REBOOT = "reboot"
    SHUTDOWN = "shutdown"


@dataclass
class WorkflowContext:
    """Everything one workflow invocation needs, passed explicitly to every step"""
    node: NodeInfo
    direction: Direction
    confirm: Callable[[str], bool]
    confirm_each_step: bool = False
    os_action: OSAction = OSAction.NONE
    rebalance_fleet: bool = False
    notes: Dict[str, Any] = field(default_factory=dict)

    @property
    def node_name(self) -> str:
        return self.node.name


@dataclass
class StepRun:
    """What a step's run function reports back to the engine"""
    detail: str
    poll: Optional[PollResult] = None
    warning: Optional[str] = None


@dataclass(frozen=True)
class WorkflowStep:
    key: str
    label: str
    check_done: Callable[[Any, WorkflowContext], Optional[str]]
    run: Callable[[Any, WorkflowContext], StepRun]
    on_timeout: TimeoutPolicy
    dag_only: bool = False
    destructive: bool = True

    def applies_to(self, node: NodeInfo) -> bool:
        return node.is_dag_member or not self.dag_only


def _wait_for_macro_state(engine, ctx: WorkflowContext, target: MacroState) -> PollResult:
    return poll_until(
        probe=lambda: engine.aggregator.get_status(ctx.node_name),
        predicate=lambda status: status.macro_state == target,
        description=f"{ctx.node_name} to reach {target.value}",
        interval=engine.settings.poll_interval,
        max_retries=engine.settings.component_retries,
        sleep=engine.sleep,
    )


def _set_component(engine, ctx: WorkflowContext, capability: Capability, state: ComponentStatus) -> bool:
    """Set a component unless it already has the requested state; True if it changed"""
    current = engine.components.get(ctx.node_name, capability)
    if current == state:
        return False
    logger.info(f"Setting {capability.value} on {ctx.node_name}: {current.value} -> {state.value}")
    engine.components.set(ctx.node_name, capability, state, engine.settings.requester)
    return True


# Entering maintenance

def _transport_drained(engine, ctx: WorkflowContext) -> Optional[str]:
    state = engine.components.get(ctx.node_name, Capability.TRANSPORT)
    if state in (ComponentStatus.DRAINING, ComponentStatus.INACTIVE):
        return f"Transport already {state.value}"
    return None


def _drain_transport(engine, ctx: WorkflowContext) -> StepRun:
    _set_component(engine, ctx, Capability.TRANSPORT, ComponentStatus.DRAINING)
    poll = poll_until(
        probe=lambda: engine.components.get(ctx.node_name, Capability.TRANSPORT),
        predicate=lambda state: state in (ComponentStatus.DRAINING, ComponentStatus.INACTIVE),
        description=f"Transport on {ctx.node_name} to drain",
        interval=engine.settings.poll_interval,
        max_retries=engine.settings.component_retries,
        sleep=engine.sleep,
    )
    return StepRun(detail=f"Transport is {poll.value.value}", poll=poll)


def _queue_depth(engine, ctx: WorkflowContext) -> int:
    return engine.queues.get_depth(ctx.node_name, exclude_classes=[DeliveryClass.SHADOW])


def _queue_empty(engine, ctx: WorkflowContext) -> Optional[str]:
    if _queue_depth(engine, ctx) == 0:
        return "No queued messages to redirect"
    return None


def _redirect_queue(engine, ctx: WorkflowContext) -> StepRun:
    depth = _queue_depth(engine, ctx)
    candidates = engine.planner.plan_targets(ctx.node, engine.topology)
    target = engine.planner.select_eligible_target(ctx.node_name, candidates)
    ctx.notes['redirect_target'] = target.name

    logger.info(f"Redirecting {depth} queued message(s) from {ctx.node_name} to {target.name}")
    engine.queues.redirect(ctx.node_name, target.name)

    poll = poll_until(
        probe=lambda: _queue_depth(engine, ctx),
        predicate=lambda remaining: remaining == 0,
        description=f"queues on {ctx.node_name} to drain",
        interval=engine.settings.poll_interval,
        max_retries=engine.settings.queue_drain_retries,
        sleep=engine.sleep,
    )
    return StepRun(detail=f"Redirected {depth} message(s) to {target.name}", poll=poll)


def _membership_paused(engine, ctx: WorkflowContext) -> Optional[str]:
    if engine.cluster.is_paused(ctx.node_name):
        return f"Cluster membership already {engine.cluster_store.get(ctx.node_name).state.value}"
    return None


def _suspend_membership(engine, ctx: WorkflowContext) -> StepRun:
    poll = engine.cluster.pause(ctx.node_name)
    return StepRun(detail=f"Cluster membership {poll.value.state.value}", poll=poll)


def _copies_relocated(engine, ctx: WorkflowContext) -> Optional[str]:
    if engine.relocation.is_relocated_away(ctx.node_name):
        return "No mounted database copies and activation already blocked"
    return None


def _relocate_copies(engine, ctx: WorkflowContext) -> StepRun:
    initial = engine.relocation.mounted_count(ctx.node_name)
    poll = engine.relocation.relocate_away(ctx.node_name)
    if initial == 0:
        return StepRun(detail="Activation blocked; no mounted copies to relocate", poll=poll)
    return StepRun(detail=f"Relocated {initial} mounted database copies", poll=poll)


def _in_maintenance(engine, ctx: WorkflowContext) -> Optional[str]:
    if engine.aggregator.get_status(ctx.node_name).in_maintenance:
        return "All tracked components already Inactive"
    return None


def _components_offline(engine, ctx: WorkflowContext) -> StepRun:
    _set_component(engine, ctx, Capability.TRANSPORT, ComponentStatus.INACTIVE)
    _set_component(engine, ctx, Capability.WIDE_OFFLINE, ComponentStatus.INACTIVE)
    poll = _wait_for_macro_state(engine, ctx, MacroState.MAINTENANCE)
    return StepRun(detail=f"Node is {poll.value}", poll=poll)


def _never_done(engine, ctx: WorkflowContext) -> Optional[str]:
    return None


def _confirm_maintenance(engine, ctx: WorkflowContext) -> StepRun:
    poll = _wait_for_macro_state(engine, ctx, MacroState.MAINTENANCE)

    if ctx.os_action == OSAction.NONE:
        return StepRun(detail="Maintenance confirmed; no OS action requested", poll=poll)

    action = ctx.os_action.value
    # The OS action is always gated, whatever confirm_each_step says
    if not ctx.confirm(f"{ctx.node_name} is in maintenance. {action.capitalize()} it now?"):
        return StepRun(detail=f"Maintenance confirmed; {action} declined by operator", poll=poll)

    logger.warning(f"Requesting {action} of {ctx.node_name}")
    if ctx.os_action == OSAction.REBOOT:
        engine.os_control.reboot(ctx.node_name)
    else:
        engine.os_control.shutdown(ctx.node_name)
    return StepRun(detail=f"Maintenance confirmed; {action} requested", poll=poll)


# Exiting maintenance

def _connected(engine, ctx: WorkflowContext) -> Optional[str]:
    if engine.aggregator.get_status(ctx.node_name).is_connected:
        return "All tracked components already Active"
    return None


def _components_active(engine, ctx: WorkflowContext) -> StepRun:
    _set_component(engine, ctx, Capability.WIDE_OFFLINE, ComponentStatus.ACTIVE)
    _set_component(engine, ctx, Capability.TRANSPORT, ComponentStatus.ACTIVE)
    poll = _wait_for_macro_state(engine, ctx, MacroState.CONNECTED)
    return StepRun(detail=f"Node is {poll.value}", poll=poll)


def _membership_up(engine, ctx: WorkflowContext) -> Optional[str]:
    if engine.cluster.is_up(ctx.node_name):
        return "Cluster membership already Up"
    return None


def _resume_membership(engine, ctx: WorkflowContext) -> StepRun:
    poll = engine.cluster.resume(ctx.node_name)
    return StepRun(detail=f"Cluster membership {poll.value.state.value}", poll=poll)


def _activation_enabled(engine, ctx: WorkflowContext) -> Optional[str]:
    if engine.relocation.is_activation_enabled(ctx.node_name):
        return "Automatic activation already unrestricted"
    return None


def _enable_auto_activation(engine, ctx: WorkflowContext) -> StepRun:
    poll = engine.relocation.enable_activation(ctx.node_name)
    return StepRun(detail="Automatic activation unrestricted", poll=poll)


def _copies_restored(engine, ctx: WorkflowContext) -> Optional[str]:
    if engine.relocation.is_restored(ctx.node_name):
        return "Preferred database copies already mounted"
    return None


def _restore_copies(engine, ctx: WorkflowContext) -> StepRun:
    pending = engine.relocation.pending_restore(ctx.node_name)
    poll = engine.relocation.restore_copies(ctx.node_name)
    return StepRun(detail=f"Mounted {pending} preferred database copies", poll=poll)


def _confirm_connected(engine, ctx: WorkflowContext) -> StepRun:
    poll = _wait_for_macro_state(engine, ctx, MacroState.CONNECTED)
    if not ctx.rebalance_fleet:
        return StepRun(detail="Node connected", poll=poll)

    # Fire-and-forget: rebalance completion is not awaited
    try:
        engine.copies.rebalance(None)
    except XMaintError as e:
        logger.warning(f"Could not start fleet-wide rebalance: {e}")
        return StepRun(detail="Node connected", poll=poll, warning=f"Fleet rebalance not started: {e}")
    return StepRun(detail="Node connected; fleet-wide rebalance started", poll=poll)


ENTER_STEPS: Tuple[WorkflowStep, ...] = (
    WorkflowStep('drain-transport', "Drain transport", _transport_drained, _drain_transport,
                 TimeoutPolicy.ABORT),
    WorkflowStep('redirect-queue', "Redirect queued messages", _queue_empty, _redirect_queue,
                 TimeoutPolicy.WARN_AND_CONTINUE),
    WorkflowStep('suspend-membership', "Suspend cluster membership", _membership_paused, _suspend_membership,
                 TimeoutPolicy.WARN_AND_CONTINUE, dag_only=True),
    WorkflowStep('relocate-copies', "Relocate database copies", _copies_relocated, _relocate_copies,
                 TimeoutPolicy.WARN_AND_CONTINUE, dag_only=True),
    WorkflowStep('components-offline', "Set components inactive", _in_maintenance, _components_offline,
                 TimeoutPolicy.ABORT),
    WorkflowStep('confirm-maintenance', "Confirm maintenance", _never_done, _confirm_maintenance,
                 TimeoutPolicy.ABORT, destructive=False),
)

EXIT_STEPS: Tuple[WorkflowStep, ...] = (
    WorkflowStep('components-active', "Set components active", _connected, _components_active,
                 TimeoutPolicy.ABORT),
    WorkflowStep('resume-membership', "Resume cluster membership", _membership_up, _resume_membership,
                 TimeoutPolicy.WARN_AND_CONTINUE, dag_only=True),
    WorkflowStep('enable-auto-activation', "Enable automatic activation", _activation_enabled,
                 _enable_auto_activation, TimeoutPolicy.WARN_AND_CONTINUE, dag_only=True),
    WorkflowStep('restore-copies', "Rebalance and mount database copies", _copies_restored, _restore_copies,
                 TimeoutPolicy.WARN_AND_CONTINUE),
    WorkflowStep('confirm-connected', "Confirm connected", _never_done, _confirm_connected,
                 TimeoutPolicy.WARN_AND_CONTINUE, destructive=False),
)

STEP_TABLES = {
    Direction.ENTER: ENTER_STEPS,
    Direction.EXIT: EXIT_STEPS,
}
