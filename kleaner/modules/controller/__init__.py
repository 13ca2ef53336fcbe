"""
Controller Module - Black Box Interface

Purpose: Wire mirrors, scheduler and deleter and run them
Interface: build_controller(), CleanupController.run(stop_event), status()
Hidden: Kubernetes client loading, task layout, sweep interval
"""

from .controller import (
    SWEEP_RESYNC_MULTIPLIER,
    CleanupController,
    build_controller,
    load_kubernetes_client,
)

__all__ = [
    "CleanupController",
    "SWEEP_RESYNC_MULTIPLIER",
    "build_controller",
    "load_kubernetes_client",
]
