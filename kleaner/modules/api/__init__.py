"""
API Module - Black Box Interface

Purpose: Shared data models passed between the other modules
Interface: JobSnapshot, PodSnapshot, Policy, DeletionDecision
Hidden: Conversion from kubernetes client objects, validation

Every other module talks in these types only.
"""

from .models import (
    DeletionDecision,
    DeletionOutcome,
    JobSnapshot,
    ObjectKind,
    OwnerReference,
    PodCondition,
    PodPhase,
    PodSnapshot,
    Policy,
    Snapshot,
)

__all__ = [
    "DeletionDecision",
    "DeletionOutcome",
    "JobSnapshot",
    "ObjectKind",
    "OwnerReference",
    "PodCondition",
    "PodPhase",
    "PodSnapshot",
    "Policy",
    "Snapshot",
]
