"""
Scheduler Module - Black Box Interface

Purpose: Decide when objects get evaluated
Interface: on_add(), on_update(), sweep(), run_periodic_sweep()
Hidden: Update suppression, sweep timing, outcome counters
"""

from .scheduler import Scheduler, SchedulerStats, snapshots_unchanged

__all__ = ["Scheduler", "SchedulerStats", "snapshots_unchanged"]
