"""
Formatting utilities for XMaint CLI output
"""

from .tables import RichTableFormatter
from .progress import ProgressFormatter
from .console import ConsoleFormatter

__all__ = ['RichTableFormatter', 'ProgressFormatter', 'ConsoleFormatter']
