"""
Tests for the Deleter and the kubernetes object store adapter.
"""

from unittest.mock import MagicMock

import pytest
from kubernetes.client.rest import ApiException

from kleaner.modules.api.models import DeletionDecision, DeletionOutcome, ObjectKind
from kleaner.modules.deleter import (
    Deleter,
    KubernetesObjectStore,
    ObjectNotFound,
    ObjectStoreError,
)


def job_decision(name="batch-1", dry_run=False):
    return DeletionDecision(kind=ObjectKind.JOB, namespace="default", name=name, dry_run=dry_run)


def pod_decision(name="pod-1", dry_run=False):
    return DeletionDecision(kind=ObjectKind.POD, namespace="default", name=name, dry_run=dry_run)


@pytest.mark.asyncio
async def test_job_deleted_with_foreground_propagation(store):
    store.add("Job", "default", "batch-1")

    outcome = await Deleter(store).delete(job_decision())

    assert outcome == DeletionOutcome.DELETED
    assert len(store.calls) == 1
    assert store.calls[0].kind == "Job"
    assert store.calls[0].propagation == "Foreground"
    assert ("Job", "default", "batch-1") not in store.existing


@pytest.mark.asyncio
async def test_pod_deleted(store):
    store.add("Pod", "default", "pod-1")

    outcome = await Deleter(store).delete(pod_decision())

    assert outcome == DeletionOutcome.DELETED
    assert store.calls[0].kind == "Pod"
    assert store.calls[0].propagation is None


@pytest.mark.asyncio
async def test_dry_run_makes_no_store_calls(store, kleaner_logs):
    store.add("Job", "default", "batch-1")

    outcome = await Deleter(store).delete(job_decision(dry_run=True))

    assert outcome == DeletionOutcome.DRY_RUN
    assert outcome.ok
    assert store.calls == []
    assert ("Job", "default", "batch-1") in store.existing
    assert "dry-run: Job 'default:batch-1' would have been deleted" in kleaner_logs.text


@pytest.mark.asyncio
async def test_delete_is_idempotent(store):
    """Second delete of an already removed object still succeeds."""
    store.add("Pod", "default", "pod-1")
    deleter = Deleter(store)

    first = await deleter.delete(pod_decision())
    second = await deleter.delete(pod_decision())

    assert first == DeletionOutcome.DELETED
    assert second == DeletionOutcome.ALREADY_GONE
    assert first.ok and second.ok
    assert len(store.calls) == 2


@pytest.mark.asyncio
async def test_other_errors_are_reported_not_raised(failing_store, kleaner_logs):
    outcome = await Deleter(failing_store).delete(job_decision())

    assert outcome == DeletionOutcome.FAILED
    assert not outcome.ok
    assert "failed to delete job 'default:batch-1'" in kleaner_logs.text


class TestKubernetesObjectStore:
    """Test ApiException translation with mocked API classes."""

    @pytest.fixture
    def k8s_store(self):
        store = KubernetesObjectStore(MagicMock())
        store.batch_api = MagicMock()
        store.core_api = MagicMock()
        return store

    def test_delete_job_passes_propagation(self, k8s_store):
        k8s_store.delete_job("ns", "job-a")

        args, kwargs = k8s_store.batch_api.delete_namespaced_job.call_args
        assert args == ("job-a", "ns")
        assert kwargs["body"].propagation_policy == "Foreground"

    def test_delete_pod_uses_default_propagation(self, k8s_store):
        k8s_store.delete_pod("ns", "pod-a")

        args, kwargs = k8s_store.core_api.delete_namespaced_pod.call_args
        assert args == ("pod-a", "ns")
        assert kwargs["body"].propagation_policy is None

    def test_not_found_translated(self, k8s_store):
        k8s_store.batch_api.delete_namespaced_job.side_effect = ApiException(status=404)

        with pytest.raises(ObjectNotFound):
            k8s_store.delete_job("ns", "job-a")

    def test_other_status_translated(self, k8s_store):
        k8s_store.core_api.delete_namespaced_pod.side_effect = ApiException(
            status=403, reason="Forbidden"
        )

        with pytest.raises(ObjectStoreError) as exc_info:
            k8s_store.delete_pod("ns", "pod-a")
        assert exc_info.value.status == 403
        assert "Forbidden" in str(exc_info.value)
