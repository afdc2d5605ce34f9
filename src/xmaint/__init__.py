"""
XMaint - Mail Node Maintenance Orchestrator

Drains a single mailbox/transport node out of service and restores it again,
driving the fleet management API step by step and waiting for each change
to converge before moving on.
"""

__version__ = "0.4.0"
