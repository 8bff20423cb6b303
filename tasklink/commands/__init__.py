"""
Command implementations for tasklink.
"""

from .sync import SyncCommand
from .history import HistoryCommand

__all__ = [
    'SyncCommand',
    'HistoryCommand',
]
