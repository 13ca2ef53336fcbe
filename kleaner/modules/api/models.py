"""
Kleaner shared data models.

These models define the structure of all data passed between
components in the Kleaner system: the snapshots the mirrors produce,
the policy the engine applies, and the decisions the deleter consumes.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Enums


class ObjectKind(str, Enum):
    """Kinds of objects the controller cleans up."""

    JOB = "Job"
    POD = "Pod"


class PodPhase(str, Enum):
    """Lifecycle phase of a pod."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"


class DeletionOutcome(str, Enum):
    """Result of executing a deletion decision."""

    DELETED = "deleted"
    ALREADY_GONE = "already_gone"
    DRY_RUN = "dry_run"
    FAILED = "failed"

    @property
    def ok(self) -> bool:
        return self is not DeletionOutcome.FAILED


# Snapshots


class OwnerReference(BaseModel):
    """Owner reference of a pod."""

    model_config = ConfigDict(frozen=True)

    kind: str
    name: str = ""


class PodCondition(BaseModel):
    """A single pod status condition."""

    model_config = ConfigDict(frozen=True)

    type: str
    status: str
    last_transition_time: Optional[datetime] = None


class JobSnapshot(BaseModel):
    """Immutable view of a Job as observed by the mirror."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["Job"] = "Job"
    namespace: str
    name: str
    resource_version: Optional[str] = None
    completion_time: Optional[datetime] = None
    succeeded: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    active: int = Field(default=0, ge=0)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_k8s(cls, job: Any) -> "JobSnapshot":
        """Build a snapshot from a kubernetes V1Job."""
        status = job.status
        return cls(
            namespace=job.metadata.namespace or "",
            name=job.metadata.name,
            resource_version=job.metadata.resource_version,
            completion_time=status.completion_time if status else None,
            succeeded=(status.succeeded or 0) if status else 0,
            failed=(status.failed or 0) if status else 0,
            active=(status.active or 0) if status else 0,
        )


class PodSnapshot(BaseModel):
    """Immutable view of a Pod as observed by the mirror."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["Pod"] = "Pod"
    namespace: str
    name: str
    resource_version: Optional[str] = None
    phase: PodPhase = PodPhase.UNKNOWN
    owner_references: Tuple[OwnerReference, ...] = ()
    conditions: Tuple[PodCondition, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @field_validator("phase", mode="before")
    @classmethod
    def coerce_phase(cls, v: Any) -> Any:
        if isinstance(v, PodPhase):
            return v
        # Phases added by newer API servers are treated as Unknown
        if v not in [p.value for p in PodPhase]:
            return PodPhase.UNKNOWN
        return v

    @classmethod
    def from_k8s(cls, pod: Any) -> "PodSnapshot":
        """Build a snapshot from a kubernetes V1Pod."""
        status = pod.status
        owners = tuple(
            OwnerReference(kind=ref.kind, name=ref.name or "")
            for ref in (pod.metadata.owner_references or [])
        )
        conditions = tuple(
            PodCondition(
                type=c.type,
                status=c.status,
                last_transition_time=c.last_transition_time,
            )
            for c in ((status.conditions or []) if status else [])
        )
        return cls(
            namespace=pod.metadata.namespace or "",
            name=pod.metadata.name,
            resource_version=pod.metadata.resource_version,
            phase=status.phase if status else None,
            owner_references=owners,
            conditions=conditions,
        )


Snapshot = Annotated[Union[JobSnapshot, PodSnapshot], Field(discriminator="kind")]


# Policy and decisions


class Policy(BaseModel):
    """
    Cleanup thresholds, constructed once at startup.

    A zero threshold disables deletion for its category.
    """

    model_config = ConfigDict(frozen=True)

    success_ttl: timedelta = Field(default=timedelta(0))
    failed_ttl: timedelta = Field(default=timedelta(0))
    pending_ttl: timedelta = Field(default=timedelta(0))
    orphan_grace_ttl: timedelta = Field(default=timedelta(0))
    dry_run: bool = False

    @field_validator("success_ttl", "failed_ttl", "pending_ttl", "orphan_grace_ttl")
    @classmethod
    def non_negative(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("TTL must not be negative")
        return v

    @staticmethod
    def enabled(ttl: timedelta) -> bool:
        return ttl > timedelta(0)


class DeletionDecision(BaseModel):
    """A single object the engine decided to delete."""

    model_config = ConfigDict(frozen=True)

    kind: ObjectKind
    namespace: str
    name: str
    reason: str = ""
    dry_run: bool = False

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"
