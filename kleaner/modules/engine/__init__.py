"""
Engine Module - Black Box Interface

Purpose: Decide whether a finished Job or Pod should be deleted
Interface: evaluate(snapshot, policy, now)
Hidden: Finish-time extraction, ownership checks, per-phase thresholds

Pure decision logic, no cluster access and no state between calls.
"""

from .engine import evaluate, pod_finish_time, pod_owned_by_job

__all__ = ["evaluate", "pod_finish_time", "pod_owned_by_job"]
