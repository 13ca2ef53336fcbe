import asyncio
import logging

from kleaner.modules.api.models import DeletionDecision, DeletionOutcome, ObjectKind

from .store import FOREGROUND, ObjectNotFound, ObjectStore

logger = logging.getLogger(__name__)


class Deleter:
    def __init__(self, store: ObjectStore):
        """
        Initialize deleter.

        Args:
            store: Object store used to issue delete requests. Calls are
                blocking and run in the default executor.
        """
        self.store = store

    async def delete(self, decision: DeletionDecision) -> DeletionOutcome:
        """
        Execute a deletion decision.

        Args:
            decision: Decision produced by the engine

        Returns:
            DeletionOutcome, never raises for store failures

        Logic:
        1. Dry-run: log the intended action only
        2. Jobs are deleted with foreground propagation so their pods go too
        3. Pods are deleted with default propagation
        4. Not found counts as success, other errors are logged
        """
        kind = decision.kind.value
        target = f"{decision.namespace}:{decision.name}"

        if decision.dry_run:
            logger.info(f"dry-run: {kind} '{target}' would have been deleted")
            return DeletionOutcome.DRY_RUN

        logger.info(f"Deleting {kind.lower()} '{target}'")
        loop = asyncio.get_running_loop()
        try:
            if decision.kind == ObjectKind.JOB:
                await loop.run_in_executor(
                    None,
                    lambda: self.store.delete_job(decision.namespace, decision.name, FOREGROUND),
                )
            else:
                await loop.run_in_executor(
                    None, lambda: self.store.delete_pod(decision.namespace, decision.name)
                )
        except ObjectNotFound:
            logger.info(f"{kind} '{target}' already gone")
            return DeletionOutcome.ALREADY_GONE
        except Exception as e:
            logger.error(f"failed to delete {kind.lower()} '{target}': {e}")
            return DeletionOutcome.FAILED

        return DeletionOutcome.DELETED
