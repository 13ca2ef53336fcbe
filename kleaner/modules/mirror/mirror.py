"""
Resource mirror for Kleaner.

Keeps a local copy of Jobs or Pods fed by list+watch and notifies
subscribers about additions and updates.

The kubernetes client is blocking, so list+watch runs in a daemon thread
that hands events to the event loop through an asyncio.Queue. The store and
the subscriber callbacks are only touched from the event loop.

Every watch is opened with timeout_seconds=resync_period. When it times out
the watch is re-opened from the last resourceVersion seen, so the full list
is only fetched at startup and after the version expires or the watch fails.
"""

import asyncio
import logging
import math
import threading
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from kubernetes import client, watch
from kubernetes.client.rest import ApiException

from kleaner.modules.api.models import JobSnapshot, PodSnapshot

logger = logging.getLogger(__name__)

# Seconds to wait before relisting after a transport error
RETRY_DELAY = 5

RELIST = "RELIST"
ADDED = "ADDED"
MODIFIED = "MODIFIED"
DELETED = "DELETED"

AddHandler = Callable[[Any], Awaitable[None]]
UpdateHandler = Callable[[Any, Any], Awaitable[None]]


class ResourceMirror:
    def __init__(
        self,
        kind: str,
        list_func: Callable[..., Any],
        convert: Callable[[Any], Any],
        resync_period: float = 30,
        list_args: Tuple[Any, ...] = (),
    ):
        """
        Initialize mirror.

        Args:
            kind: Resource kind, used in log lines
            list_func: kubernetes list call (also used to open watches)
            convert: Turns a kubernetes object into a snapshot
            resync_period: Seconds each watch stays open before it is re-opened
            list_args: Positional arguments for list_func (the namespace)
        """
        self.kind = kind
        self.list_func = list_func
        self.list_args = tuple(list_args)
        self.convert = convert
        self.resync_period = resync_period

        self.synced = False
        self._store: Dict[str, Any] = {}
        self._handlers: List[Tuple[AddHandler, UpdateHandler]] = []
        self._events: Optional[asyncio.Queue] = None
        self._watch: Optional[watch.Watch] = None
        self._thread_stop = threading.Event()

    def subscribe(self, on_add: AddHandler, on_update: UpdateHandler) -> None:
        """Register callbacks for added and updated objects."""
        self._handlers.append((on_add, on_update))

    def list(self) -> List[Any]:
        """Current snapshots, in no particular order."""
        return list(self._store.values())

    def get(self, key: str) -> Optional[Any]:
        return self._store.get(key)

    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Run list+watch and dispatch notifications until stop_event is set.
        """
        loop = asyncio.get_running_loop()
        self._events = asyncio.Queue()
        self._thread_stop.clear()

        watcher = threading.Thread(
            target=self._watch_loop, args=(loop,), name=f"{self.kind.lower()}-watch", daemon=True
        )
        watcher.start()
        stopper = asyncio.create_task(self._stop_on(stop_event))

        logger.info(f"{self.kind} mirror started")
        try:
            while True:
                event = await self._events.get()
                if event is None:
                    break
                await self.handle_event(*event)
        finally:
            stopper.cancel()
            self._thread_stop.set()
            if self._watch:
                self._watch.stop()
            logger.info(f"{self.kind} mirror stopped")

    async def _stop_on(self, stop_event: asyncio.Event) -> None:
        await stop_event.wait()
        self._events.put_nowait(None)

    async def handle_event(self, event_type: str, payload: Any) -> None:
        """
        Apply one event to the store and notify subscribers.

        Args:
            event_type: RELIST (payload is a list of snapshots), ADDED,
                MODIFIED or DELETED (payload is one snapshot)
        """
        if event_type == RELIST:
            seen = set()
            for snapshot in payload:
                seen.add(snapshot.key)
                await self._upsert(snapshot)
            for key in set(self._store) - seen:
                del self._store[key]
            if not self.synced:
                logger.info(f"{self.kind} mirror synced with {len(self._store)} objects")
            self.synced = True
        elif event_type in (ADDED, MODIFIED):
            await self._upsert(payload)
        elif event_type == DELETED:
            self._store.pop(payload.key, None)
        else:
            logger.warning(f"Ignoring unknown {self.kind} event type: {event_type}")

    async def _upsert(self, snapshot: Any) -> None:
        old = self._store.get(snapshot.key)
        self._store[snapshot.key] = snapshot
        for on_add, on_update in self._handlers:
            try:
                if old is None:
                    await on_add(snapshot)
                else:
                    await on_update(old, snapshot)
            except Exception as e:
                logger.error(f"Error handling {self.kind} '{snapshot.key}': {e}")

    def _emit(self, loop: asyncio.AbstractEventLoop, event: Tuple[str, Any]) -> bool:
        try:
            loop.call_soon_threadsafe(self._events.put_nowait, event)
            return True
        except RuntimeError:
            # Event loop already closed
            return False

    def _watch_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        List once, then keep re-opening the watch from the last seen
        resourceVersion. Only an expired version (410), an ERROR event or a
        transport failure forces a new list.
        """
        resource_version: Optional[str] = None
        while not self._thread_stop.is_set():
            try:
                if resource_version is None:
                    result = self.list_func(*self.list_args)
                    snapshots = [self.convert(item) for item in result.items]
                    if not self._emit(loop, (RELIST, snapshots)):
                        return
                    resource_version = result.metadata.resource_version

                self._watch = watch.Watch()
                for event in self._watch.stream(
                    self.list_func,
                    *self.list_args,
                    resource_version=resource_version,
                    timeout_seconds=watch_timeout(self.resync_period),
                ):
                    if self._thread_stop.is_set():
                        return
                    if event["type"] == "ERROR":
                        logger.info(f"{self.kind} watch returned an error, relisting")
                        resource_version = None
                        break
                    snapshot = self.convert(event["object"])
                    if snapshot.resource_version:
                        resource_version = snapshot.resource_version
                    if not self._emit(loop, (event["type"], snapshot)):
                        return

            except ApiException as e:
                resource_version = None
                if e.status == 410:
                    logger.info(f"{self.kind} watch expired, relisting")
                    continue
                logger.error(f"{self.kind} list/watch failed (status={e.status}): {e.reason}")
                self._thread_stop.wait(RETRY_DELAY)
            except Exception as e:
                resource_version = None
                logger.error(f"{self.kind} list/watch error: {e}")
                logger.info(f"Relisting {self.kind} in {RETRY_DELAY} seconds...")
                self._thread_stop.wait(RETRY_DELAY)


def watch_timeout(resync_period: float) -> int:
    """Server-side watch timeout in whole seconds (0 would mean the server default)."""
    return max(1, math.ceil(resync_period))


def job_mirror(
    api_client: Optional[Any] = None, namespace: str = "", resync_period: float = 30
) -> ResourceMirror:
    """Mirror of Jobs in namespace (all namespaces when empty)."""
    api = client.BatchV1Api(api_client)
    if namespace:
        return ResourceMirror(
            "Job", api.list_namespaced_job, JobSnapshot.from_k8s, resync_period, (namespace,)
        )
    return ResourceMirror("Job", api.list_job_for_all_namespaces, JobSnapshot.from_k8s, resync_period)


def pod_mirror(
    api_client: Optional[Any] = None, namespace: str = "", resync_period: float = 30
) -> ResourceMirror:
    """Mirror of Pods in namespace (all namespaces when empty)."""
    api = client.CoreV1Api(api_client)
    if namespace:
        return ResourceMirror(
            "Pod", api.list_namespaced_pod, PodSnapshot.from_k8s, resync_period, (namespace,)
        )
    return ResourceMirror("Pod", api.list_pod_for_all_namespaces, PodSnapshot.from_k8s, resync_period)
