"""
Mirror Module - Black Box Interface

Purpose: Local, eventually-consistent copy of Jobs and Pods
Interface: list(), subscribe(on_add, on_update), run(stop_event)
Hidden: list+watch transport, resync, relist on expiry and errors

Can be replaced with any source that lists snapshots and calls back on changes.
"""

from .mirror import ResourceMirror, job_mirror, pod_mirror

__all__ = ["ResourceMirror", "job_mirror", "pod_mirror"]
