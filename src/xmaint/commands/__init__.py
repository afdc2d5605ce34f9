"""
XMaint Commands Module

Command handlers for the xmaint CLI, organized into logical groups.

Command Organization:
- maintenance.py: Workflow commands (enter_maintenance, exit_maintenance, plan_targets)
- monitoring.py: Read-only commands (status, watch)
"""

from .base import BaseCommand
from .maintenance import (
    EnterMaintenanceCommand, ExitMaintenanceCommand, PlanTargetsCommand, create_maintenance_commands,
)
from .monitoring import StatusCommand, WatchCommand, create_monitoring_commands

__all__ = [
    'BaseCommand',
    'EnterMaintenanceCommand',
    'ExitMaintenanceCommand',
    'PlanTargetsCommand',
    'create_maintenance_commands',
    'StatusCommand',
    'WatchCommand',
    'create_monitoring_commands',
]
