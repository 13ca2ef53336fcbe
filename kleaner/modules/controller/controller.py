"""
Cleanup controller for Kleaner.

Composition root that wires the mirrors, the scheduler and the deleter
together, and runs their tasks until shutdown:
- one consumer task per mirror (Jobs, Pods)
- one periodic sweep task
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from kubernetes import client
from kubernetes import config as kube_config
from kubernetes.config.config_exception import ConfigException

from kleaner.config.provider import ConfigProvider
from kleaner.modules.api.models import Policy
from kleaner.modules.deleter import Deleter, KubernetesObjectStore, ObjectStore
from kleaner.modules.mirror import ResourceMirror, job_mirror, pod_mirror
from kleaner.modules.scheduler import Scheduler

logger = logging.getLogger(__name__)

# Sweeps run at this multiple of the mirror resync period
SWEEP_RESYNC_MULTIPLIER = 2


class CleanupController:
    """Watches Jobs and Pods and deletes the finished ones past their TTL."""

    def __init__(
        self,
        policy: Policy,
        store: ObjectStore,
        jobs: ResourceMirror,
        pods: ResourceMirror,
        resync_period: float,
    ):
        self.policy = policy
        self.jobs = jobs
        self.pods = pods
        self.scheduler = Scheduler(
            policy,
            Deleter(store),
            [jobs, pods],
            sweep_interval=SWEEP_RESYNC_MULTIPLIER * resync_period,
        )
        for mirror in (jobs, pods):
            mirror.subscribe(self.scheduler.on_add, self.scheduler.on_update)

        self.running = False

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run all controller tasks until stop_event is set."""
        logger.info("Listening for changes...")
        logger.info(
            f"Policy: successful={self.policy.success_ttl} failed={self.policy.failed_ttl} "
            f"pending={self.policy.pending_ttl} orphaned={self.policy.orphan_grace_ttl} "
            f"dry_run={self.policy.dry_run}"
        )
        self.running = True
        try:
            await asyncio.gather(
                self.jobs.run(stop_event),
                self.pods.run(stop_event),
                self.scheduler.run_periodic_sweep(stop_event),
            )
        finally:
            self.running = False
            logger.info("Controller stopped")

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "jobs_synced": self.jobs.synced,
            "pods_synced": self.pods.synced,
            "jobs_known": len(self.jobs.list()),
            "pods_known": len(self.pods.list()),
            "dry_run": self.policy.dry_run,
        }


def load_kubernetes_client(context: Optional[str] = None) -> client.ApiClient:
    """Use in-cluster credentials when available, otherwise the local kubeconfig."""
    try:
        kube_config.load_incluster_config()
        logger.info("Using in-cluster kubernetes configuration")
    except ConfigException:
        kube_config.load_kube_config(context=context)
        logger.info(f"Using kubeconfig (context: {context or 'current'})")
    return client.ApiClient()


def build_controller(
    config_provider: ConfigProvider, api_client: Optional[client.ApiClient] = None
) -> CleanupController:
    """
    Build a controller from configuration.

    Args:
        config_provider: Configuration provider
        api_client: Kubernetes API client, loaded from the environment when omitted
    """
    policy = config_provider.get_policy()
    controller_config = config_provider.get_controller_config()

    if api_client is None:
        api_client = load_kubernetes_client(controller_config.kube_context)

    scope = "all namespaces" if controller_config.all_namespaces else controller_config.namespace
    logger.info(f"Building cleanup controller for {scope}")

    return CleanupController(
        policy=policy,
        store=KubernetesObjectStore(api_client),
        jobs=job_mirror(api_client, controller_config.namespace, controller_config.resync_period),
        pods=pod_mirror(api_client, controller_config.namespace, controller_config.resync_period),
        resync_period=controller_config.resync_period,
    )
