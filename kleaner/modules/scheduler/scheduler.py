"""
Scheduler for Kleaner.

Drives the reconcile engine from two triggers:
- mirror notifications (add, and update when the object really changed)
- a periodic sweep over everything the mirrors currently hold

The sweep is what catches objects whose TTL expires without any further
change on the API server. Evaluating the same object from both triggers at
once is harmless since evaluation is pure and deletion is idempotent.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from kleaner.modules.api.models import DeletionOutcome, Policy
from kleaner.modules.deleter import Deleter
from kleaner.modules.engine import evaluate

logger = logging.getLogger(__name__)


class SnapshotSource(Protocol):
    """Anything that can list its current snapshots (a mirror)."""

    def list(self) -> List[Any]:
        ...


@dataclass
class SchedulerStats:
    """Counters exposed on the metrics endpoint."""

    evaluated: int = 0
    updates_skipped: int = 0
    decisions: int = 0
    deleted: int = 0
    already_gone: int = 0
    dry_run: int = 0
    failed: int = 0
    sweeps: int = 0

    def record(self, outcome: DeletionOutcome) -> None:
        field_name = outcome.value
        setattr(self, field_name, getattr(self, field_name) + 1)

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def snapshots_unchanged(old: Any, new: Any) -> bool:
    """
    Check whether an update carries no new information.

    Resource versions are compared when both snapshots have one, falling
    back to full equality otherwise.
    """
    if old.resource_version and new.resource_version:
        return old.resource_version == new.resource_version
    return old == new


class Scheduler:
    def __init__(
        self,
        policy: Policy,
        deleter: Deleter,
        sources: Sequence[SnapshotSource],
        sweep_interval: float,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize scheduler.

        Args:
            policy: Cleanup thresholds, fixed for the controller's lifetime
            deleter: Executes decisions
            sources: Mirrors swept in order (jobs first, then pods)
            sweep_interval: Seconds between periodic sweeps
            clock: Returns the evaluation instant, defaults to UTC now
        """
        self.policy = policy
        self.deleter = deleter
        self.sources = list(sources)
        self.sweep_interval = sweep_interval
        self.clock = clock or (lambda: datetime.now(UTC))
        self.stats = SchedulerStats()

    async def on_add(self, snapshot: Any) -> None:
        await self.process(snapshot)

    async def on_update(self, old: Any, new: Any) -> None:
        if snapshots_unchanged(old, new):
            self.stats.updates_skipped += 1
            return
        await self.process(new)

    async def process(self, snapshot: Any) -> Optional[DeletionOutcome]:
        """Evaluate one snapshot and execute the resulting decision, if any."""
        self.stats.evaluated += 1
        decision = evaluate(snapshot, self.policy, self.clock())
        if decision is None:
            return None

        self.stats.decisions += 1
        outcome = await self.deleter.delete(decision)
        self.stats.record(outcome)
        return outcome

    async def sweep(self, stop_event: Optional[asyncio.Event] = None) -> int:
        """
        Evaluate every known object once.

        Returns:
            Number of snapshots evaluated (less than the total when stopped)
        """
        count = 0
        for source in self.sources:
            for snapshot in source.list():
                if stop_event is not None and stop_event.is_set():
                    logger.info("Sweep interrupted by shutdown")
                    return count
                await self.process(snapshot)
                count += 1
        self.stats.sweeps += 1
        logger.debug(f"Sweep evaluated {count} objects")
        return count

    async def run_periodic_sweep(self, stop_event: asyncio.Event) -> None:
        """Sweep every sweep_interval seconds until stop_event is set."""
        logger.info(f"Periodic sweep started (every {self.sweep_interval}s)")

        while not stop_event.is_set():
            try:
                await self.sweep(stop_event)
            except Exception as e:
                logger.error(f"Sweep failed: {e}")

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.sweep_interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Periodic sweep stopped")
