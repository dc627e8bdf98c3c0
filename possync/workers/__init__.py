"""
Background Workers
==================
"""

from .scheduler import SyncScheduler, is_due, sync_window

__all__ = ['SyncScheduler', 'is_due', 'sync_window']
