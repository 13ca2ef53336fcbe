"""Object store interfaces following Black Box Design principles."""
from typing import Any, Optional, Protocol

from kubernetes import client
from kubernetes.client.rest import ApiException

FOREGROUND = "Foreground"


class ObjectNotFound(Exception):
    """The object to delete no longer exists."""


class ObjectStoreError(Exception):
    """Any other failure reported by the object store."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ObjectStore(Protocol):
    """Protocol for the cluster object store - allows swappable implementations."""

    def delete_job(self, namespace: str, name: str, propagation: str = FOREGROUND) -> None:
        """
        Delete a Job.

        Raises:
            ObjectNotFound: The job does not exist
            ObjectStoreError: Any other failure
        """
        ...

    def delete_pod(self, namespace: str, name: str) -> None:
        """
        Delete a Pod with default propagation.

        Raises:
            ObjectNotFound: The pod does not exist
            ObjectStoreError: Any other failure
        """
        ...


class KubernetesObjectStore:
    """ObjectStore backed by the kubernetes API server."""

    def __init__(self, api_client: Optional[Any] = None):
        self.batch_api = client.BatchV1Api(api_client)
        self.core_api = client.CoreV1Api(api_client)

    def delete_job(self, namespace: str, name: str, propagation: str = FOREGROUND) -> None:
        body = client.V1DeleteOptions(propagation_policy=propagation)
        try:
            self.batch_api.delete_namespaced_job(name, namespace, body=body)
        except ApiException as e:
            raise _translate(e, "Job", namespace, name) from e

    def delete_pod(self, namespace: str, name: str) -> None:
        try:
            self.core_api.delete_namespaced_pod(name, namespace, body=client.V1DeleteOptions())
        except ApiException as e:
            raise _translate(e, "Pod", namespace, name) from e


def _translate(e: ApiException, kind: str, namespace: str, name: str) -> Exception:
    if e.status == 404:
        return ObjectNotFound(f"{kind} '{namespace}:{name}' not found")
    return ObjectStoreError(
        f"{kind} '{namespace}:{name}' (status={e.status}): {e.reason}", status=e.status
    )
