"""
Shared pytest fixtures for Kleaner tests.

This module provides common fixtures including:
- Snapshot factories for Jobs and Pods
- FakeObjectStore: records delete calls with configurable responses
- FakeMirror: in-memory snapshot source with a run() that waits for shutdown
"""

import asyncio
import logging
import os
import sys
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, List, Optional, Set, Tuple

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kleaner.modules.api.models import (
    JobSnapshot,
    OwnerReference,
    PodCondition,
    PodSnapshot,
    Policy,
)
from kleaner.modules.deleter import ObjectNotFound, ObjectStoreError

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=UTC)


# =============================================================================
# Snapshot factories
# =============================================================================


def make_job(
    name: str = "job-1",
    namespace: str = "default",
    age: Optional[timedelta] = None,
    succeeded: int = 0,
    failed: int = 0,
    active: int = 0,
    resource_version: Optional[str] = "1",
) -> JobSnapshot:
    """Job that completed `age` before NOW (never completed when age is None)."""
    return JobSnapshot(
        namespace=namespace,
        name=name,
        resource_version=resource_version,
        completion_time=NOW - age if age is not None else None,
        succeeded=succeeded,
        failed=failed,
        active=active,
    )


def make_pod(
    name: str = "pod-1",
    namespace: str = "default",
    phase: str = "Succeeded",
    age: Optional[timedelta] = None,
    owned_by_job: bool = True,
    resource_version: Optional[str] = "1",
) -> PodSnapshot:
    """Pod whose Ready condition went False `age` before NOW (never when age is None)."""
    owners: Tuple[OwnerReference, ...] = ()
    if owned_by_job:
        owners = (OwnerReference(kind="Job", name="job-1"),)

    conditions = [PodCondition(type="Initialized", status="True", last_transition_time=NOW)]
    if age is not None:
        conditions.append(
            PodCondition(type="Ready", status="False", last_transition_time=NOW - age)
        )

    return PodSnapshot(
        namespace=namespace,
        name=name,
        resource_version=resource_version,
        phase=phase,
        owner_references=owners,
        conditions=tuple(conditions),
    )


@pytest.fixture
def policy():
    """Policy with every category enabled."""
    return Policy(
        success_ttl=timedelta(minutes=10),
        failed_ttl=timedelta(minutes=5),
        pending_ttl=timedelta(minutes=30),
        orphan_grace_ttl=timedelta(hours=1),
    )


# =============================================================================
# Object store and mirror fakes
# =============================================================================


@dataclass
class DeleteCall:
    """Record of a delete request made during testing."""
    kind: str
    namespace: str
    name: str
    propagation: Optional[str] = None


class FakeObjectStore:
    """
    ObjectStore that keeps a set of existing objects.

    Deleting an object removes it, deleting a missing object raises
    ObjectNotFound. Setting `error` makes every call raise it instead.
    """

    def __init__(self, existing: Optional[Set[Tuple[str, str, str]]] = None):
        self.existing: Set[Tuple[str, str, str]] = set(existing or ())
        self.calls: List[DeleteCall] = []
        self.error: Optional[Exception] = None

    def add(self, kind: str, namespace: str, name: str) -> "FakeObjectStore":
        self.existing.add((kind, namespace, name))
        return self

    def _delete(self, kind: str, namespace: str, name: str) -> None:
        if self.error:
            raise self.error
        key = (kind, namespace, name)
        if key not in self.existing:
            raise ObjectNotFound(f"{kind} '{namespace}:{name}' not found")
        self.existing.remove(key)

    def delete_job(self, namespace: str, name: str, propagation: str = "Foreground") -> None:
        self.calls.append(DeleteCall("Job", namespace, name, propagation))
        self._delete("Job", namespace, name)

    def delete_pod(self, namespace: str, name: str) -> None:
        self.calls.append(DeleteCall("Pod", namespace, name))
        self._delete("Pod", namespace, name)


class FakeMirror:
    """In-memory snapshot source."""

    def __init__(self, snapshots: Optional[List[Any]] = None):
        self.snapshots = list(snapshots or [])
        self.handlers = []
        self.synced = True

    def list(self) -> List[Any]:
        return list(self.snapshots)

    def subscribe(self, on_add, on_update) -> None:
        self.handlers.append((on_add, on_update))

    async def run(self, stop_event: asyncio.Event) -> None:
        await stop_event.wait()


@pytest.fixture
def store():
    return FakeObjectStore()


@pytest.fixture
def failing_store():
    store = FakeObjectStore()
    store.error = ObjectStoreError("forbidden", status=403)
    return store


@pytest.fixture
def kleaner_logs(caplog):
    """
    caplog wired to the kleaner logger.

    The logging config stops kleaner records from propagating to root,
    so the capture handler is attached directly.
    """
    kleaner_logger = logging.getLogger("kleaner")
    kleaner_logger.addHandler(caplog.handler)
    caplog.set_level(logging.INFO, logger="kleaner")
    yield caplog
    kleaner_logger.removeHandler(caplog.handler)

