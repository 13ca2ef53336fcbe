"""
Reconcile engine for Kleaner.

Maps a single Job or Pod snapshot plus the cleanup Policy to an optional
DeletionDecision. Nothing here talks to the cluster and nothing is
remembered between calls: the same snapshot evaluated at the same instant
always produces the same answer.

Boundary rules:
- Succeeded jobs are deleted once their age is strictly greater than the
  success TTL.
- Failed jobs, and pods in every phase, are deleted once their age reaches
  the threshold (inclusive).
"""

import logging
from datetime import UTC, datetime
from typing import Optional

from kleaner.modules.api.models import (
    DeletionDecision,
    JobSnapshot,
    ObjectKind,
    PodPhase,
    PodSnapshot,
    Policy,
    Snapshot,
)

logger = logging.getLogger(__name__)


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts


def pod_owned_by_job(pod: PodSnapshot) -> bool:
    """Return True if any owner reference of the pod is a Job."""
    # Usually there is only one owner
    return any(ref.kind == "Job" for ref in pod.owner_references)


def pod_finish_time(pod: PodSnapshot) -> Optional[datetime]:
    """
    Time the pod's Ready condition last became False.

    That transition marks the end of execution. Returns None when the pod
    never recorded it.
    """
    finished = [
        _as_utc(c.last_transition_time)
        for c in pod.conditions
        if c.type == "Ready" and c.status == "False" and c.last_transition_time is not None
    ]
    if not finished:
        return None
    return max(finished)


def evaluate_job(
    job: JobSnapshot, policy: Policy, now: datetime
) -> Optional[DeletionDecision]:
    """Decide whether a finished job should be deleted."""
    logger.info(
        f"Found a job: {job.key}. completionTime: {job.completion_time} active: {job.active}"
    )

    # Skip the job if it hasn't completed yet or still has active pods
    if job.completion_time is None or job.active > 0:
        return None

    age = now - _as_utc(job.completion_time)

    if job.succeeded > 0 and policy.enabled(policy.success_ttl) and age > policy.success_ttl:
        return _decide(job.kind, job.namespace, job.name, policy, f"succeeded {age} ago")

    if job.failed > 0 and policy.enabled(policy.failed_ttl) and age >= policy.failed_ttl:
        return _decide(job.kind, job.namespace, job.name, policy, f"failed {age} ago")

    return None


def evaluate_pod(
    pod: PodSnapshot, policy: Policy, now: datetime
) -> Optional[DeletionDecision]:
    """Decide whether a finished pod should be deleted."""
    owned_by_job = pod_owned_by_job(pod)
    logger.info(f"Found a pod: {pod.key}. owned by job: {owned_by_job}")

    # Orphans are only considered at all when an orphan grace is configured.
    # The phase threshold below still decides deletion for them.
    if not owned_by_job and not policy.enabled(policy.orphan_grace_ttl):
        return None

    finish_time = pod_finish_time(pod)
    if finish_time is None:
        return None

    age = now - finish_time
    logger.info(f"Found a pod: {pod.key}. finishTime: {finish_time} age: {age}")

    if pod.phase == PodPhase.SUCCEEDED:
        threshold = policy.success_ttl
    elif pod.phase == PodPhase.FAILED:
        threshold = policy.failed_ttl
    elif pod.phase == PodPhase.PENDING:
        threshold = policy.pending_ttl
    else:
        return None

    if policy.enabled(threshold) and age >= threshold:
        reason = f"{pod.phase.value.lower()} {age} ago"
        if not owned_by_job:
            reason += " (orphaned)"
        return _decide(pod.kind, pod.namespace, pod.name, policy, reason)

    return None


def evaluate(
    snapshot: Snapshot, policy: Policy, now: Optional[datetime] = None
) -> Optional[DeletionDecision]:
    """
    Evaluate a Job or Pod snapshot against the policy.

    Args:
        snapshot: JobSnapshot or PodSnapshot
        policy: Cleanup thresholds
        now: Evaluation instant (defaults to the current UTC time)

    Returns:
        DeletionDecision if the object should be deleted, otherwise None
    """
    now = _as_utc(now) if now is not None else datetime.now(UTC)

    if snapshot.kind == ObjectKind.JOB.value:
        decision = evaluate_job(snapshot, policy, now)
    elif snapshot.kind == ObjectKind.POD.value:
        decision = evaluate_pod(snapshot, policy, now)
    else:
        raise ValueError(f"Unsupported snapshot kind: {snapshot.kind}")

    if decision is not None:
        logger.info(f"Decision: delete {decision.kind.value} '{decision.key}' ({decision.reason})")
    return decision


def _decide(
    kind: str, namespace: str, name: str, policy: Policy, reason: str
) -> DeletionDecision:
    return DeletionDecision(
        kind=ObjectKind(kind),
        namespace=namespace,
        name=name,
        reason=reason,
        dry_run=policy.dry_run,
    )


__all__ = [
    "evaluate",
    "evaluate_job",
    "evaluate_pod",
    "pod_finish_time",
    "pod_owned_by_job",
]
