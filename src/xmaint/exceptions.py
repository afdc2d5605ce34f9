"""
Exception hierarchy for XMaint

All errors raised by the fleet client and the maintenance workflow derive from
XMaintError so that command handlers can report them uniformly.
"""

from typing import Any, Optional


class XMaintError(Exception):
    """Base class for all XMaint errors

    When raised out of a workflow, 'report' holds the partial WorkflowReport.
    """

    report = None


class UnreachableError(XMaintError):
    """A node (or the fleet API on its behalf) could not be queried"""

    def __init__(self, node: Optional[str], message: str = ""):
        self.node = node
        detail = message or "node did not respond"
        super().__init__(f"{node}: {detail}" if node else detail)


class FleetAPIError(XMaintError):
    """A collaborator call failed (as opposed to timing out waiting for its effect)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class PreconditionError(XMaintError):
    """The request cannot be started, e.g. the node is not part of the managed fleet"""


class NoEligibleTargetError(XMaintError):
    """No candidate node can accept redirected queue traffic

    Terminal: waiting will not produce a new eligible node, so this is never retried.
    """

    def __init__(self, node: str, candidates: Optional[list] = None):
        self.node = node
        self.candidates = list(candidates or [])
        super().__init__(
            f"No eligible redirect target for {node} "
            f"({len(self.candidates)} candidate(s) checked, all in maintenance or unreachable)"
        )


class ConvergenceTimeoutError(XMaintError):
    """The retry budget ran out before the observed state reached the target condition"""

    def __init__(self, description: str, attempts: int, elapsed: float, last_observed: Any = None):
        self.description = description
        self.attempts = attempts
        self.elapsed = elapsed
        self.last_observed = last_observed
        super().__init__(
            f"Timed out waiting for {description} after {attempts} attempt(s) "
            f"({elapsed:.0f}s); last observed: {last_observed}"
        )


class StepDeclinedError(XMaintError):
    """The operator declined a confirmation gate"""

    def __init__(self, node: str, step_label: str):
        self.node = node
        self.step_label = step_label
        super().__init__(f"Operator declined step '{step_label}' on {node}")
