"""
Deleter Module - Black Box Interface

Purpose: Execute deletion decisions against the cluster
Interface: Deleter.delete(decision) -> DeletionOutcome
Hidden: Propagation policy, dry-run handling, API error translation

Can be pointed at any ObjectStore implementation (fake stores in tests).
"""

from .deleter import Deleter
from .store import (
    FOREGROUND,
    KubernetesObjectStore,
    ObjectNotFound,
    ObjectStore,
    ObjectStoreError,
)

__all__ = [
    "Deleter",
    "FOREGROUND",
    "KubernetesObjectStore",
    "ObjectNotFound",
    "ObjectStore",
    "ObjectStoreError",
]
