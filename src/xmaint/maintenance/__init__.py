"""
Maintenance workflow engine for XMaint

- status: macro-state aggregation (the convergence oracle)
- polling: bounded convergence waits
- queue_drain: redirect target planning
- relocation: database copy relocation and restore
- cluster: cluster membership pause/resume
- steps: the enter/exit step tables and their timeout policies
- workflow: the step sequencer
- watch: read-only fleet snapshots
"""

from .cluster import ClusterMembershipController
from .polling import PollResult, poll_until
from .queue_drain import QueueDrainPlanner
from .relocation import DatabaseRelocationCoordinator
from .status import StatusAggregator, reduce_macro_state
from .steps import ENTER_STEPS, EXIT_STEPS, Direction, OSAction, TimeoutPolicy, WorkflowContext, WorkflowStep
from .watch import FleetWatcher
from .workflow import MaintenanceWorkflow, StepOutcome, StepResult, WorkflowReport

__all__ = [
    'ClusterMembershipController',
    'PollResult',
    'poll_until',
    'QueueDrainPlanner',
    'DatabaseRelocationCoordinator',
    'StatusAggregator',
    'reduce_macro_state',
    'ENTER_STEPS',
    'EXIT_STEPS',
    'Direction',
    'OSAction',
    'TimeoutPolicy',
    'WorkflowContext',
    'WorkflowStep',
    'FleetWatcher',
    'MaintenanceWorkflow',
    'StepOutcome',
    'StepResult',
    'WorkflowReport',
]
