"""
Kubernetes resource provider for the KubeForge agent.

Exposes the small set of cluster capabilities the agent needs (list,
read, create, patch, pod logs) keyed by kind, namespace and name, so the
rest of the agent never touches the Kubernetes client directly.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import kubernetes
from kubernetes import client
from kubernetes.client.rest import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import NotFoundError

logger = logging.getLogger("kubeforge.cluster")

MERGE_PATCH = "application/merge-patch+json"
DRY_RUN_ALL = "All"


@dataclass(frozen=True)
class ResourceKind:
    """A resource kind the agent can enumerate and read."""

    kind: str
    api_version: str


# Catalog of kinds enumerated by list_resources and readable by get_manifests
RESOURCE_CATALOG: List[ResourceKind] = [
    ResourceKind("Deployment", "apps/v1"),
    ResourceKind("Service", "v1"),
    ResourceKind("ConfigMap", "v1"),
    ResourceKind("Secret", "v1"),
    ResourceKind("Ingress", "networking.k8s.io/v1"),
    ResourceKind("StatefulSet", "apps/v1"),
    ResourceKind("DaemonSet", "apps/v1"),
    ResourceKind("CronJob", "batch/v1"),
    ResourceKind("Job", "batch/v1"),
    ResourceKind("HorizontalPodAutoscaler", "autoscaling/v1"),
    ResourceKind("PersistentVolumeClaim", "v1"),
]

CATALOG_BY_KIND: Dict[str, ResourceKind] = {entry.kind: entry for entry in RESOURCE_CATALOG}


def lookup_kind(kind: str) -> Optional[ResourceKind]:
    """Find a catalog entry by kind name."""
    return CATALOG_BY_KIND.get(kind)


class ResourceNotFound(Exception):
    """The requested resource does not exist in the cluster."""

    def __init__(self, kind: str, namespace: str, name: str):
        super().__init__(f"{kind} {namespace}/{name} not found")
        self.kind = kind
        self.namespace = namespace
        self.name = name


class ResourceProvider(Protocol):
    """Capability-typed access to cluster resources."""

    def server_version(self) -> Optional[str]:
        """Return the API server git version."""
        ...

    def list_namespaces(self) -> List[Dict[str, Any]]:
        ...

    def list_resources(self, kind: ResourceKind, namespace: str) -> List[Dict[str, Any]]:
        ...

    def read(self, api_version: str, kind: str, namespace: str, name: str) -> Dict[str, Any]:
        """Return the live document, raising ResourceNotFound if missing."""
        ...

    def create(self, document: Dict[str, Any], dry_run: bool = False) -> Dict[str, Any]:
        ...

    def patch(self, document: Dict[str, Any], dry_run: bool = False) -> Dict[str, Any]:
        ...

    def list_pods(self, namespace: str, limit: int) -> List[str]:
        ...

    def read_pod_log(self, namespace: str, pod: str, tail_lines: int) -> str:
        ...


def load_kube_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    try:
        kubernetes.config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes configuration")
    except kubernetes.config.ConfigException:
        logger.info("Not running in-cluster, trying default kubeconfig")
        kubernetes.config.load_kube_config()


class KubernetesResourceProvider:
    """ResourceProvider backed by the official Kubernetes Python client."""

    def __init__(self, api_client: Optional[client.ApiClient] = None):
        """
        Initialize provider.

        Args:
            api_client: Configured ApiClient; built from the loaded
                kube config when omitted
        """
        self.api_client = api_client or client.ApiClient()
        self.core = client.CoreV1Api(self.api_client)
        self._dynamic: Optional[DynamicClient] = None
        self._dynamic_lock = threading.Lock()

    @property
    def dynamic(self) -> DynamicClient:
        # Discovery runs on construction, so build lazily and only once
        with self._dynamic_lock:
            if self._dynamic is None:
                self._dynamic = DynamicClient(self.api_client)
        return self._dynamic

    def _resource(self, api_version: str, kind: str):
        return self.dynamic.resources.get(api_version=api_version, kind=kind)

    def server_version(self) -> Optional[str]:
        info = client.VersionApi(self.api_client).get_code()
        return info.git_version

    def list_namespaces(self) -> List[Dict[str, Any]]:
        namespaces = self.core.list_namespace()
        return [self.api_client.sanitize_for_serialization(ns) for ns in namespaces.items or []]

    def list_resources(self, kind: ResourceKind, namespace: str) -> List[Dict[str, Any]]:
        resource = self._resource(kind.api_version, kind.kind)
        listing = self.dynamic.get(resource, namespace=namespace).to_dict()
        return listing.get("items") or []

    def read(self, api_version: str, kind: str, namespace: str, name: str) -> Dict[str, Any]:
        resource = self._resource(api_version, kind)
        try:
            return self.dynamic.get(resource, name=name, namespace=namespace).to_dict()
        except NotFoundError:
            raise ResourceNotFound(kind, namespace, name)

    def create(self, document: Dict[str, Any], dry_run: bool = False) -> Dict[str, Any]:
        resource = self._resource(document["apiVersion"], document["kind"])
        kwargs = {"dry_run": DRY_RUN_ALL} if dry_run else {}
        created = self.dynamic.create(
            resource,
            body=document,
            namespace=document["metadata"].get("namespace"),
            **kwargs,
        )
        return created.to_dict()

    def patch(self, document: Dict[str, Any], dry_run: bool = False) -> Dict[str, Any]:
        resource = self._resource(document["apiVersion"], document["kind"])
        kwargs = {"dry_run": DRY_RUN_ALL} if dry_run else {}
        patched = self.dynamic.patch(
            resource,
            body=document,
            name=document["metadata"]["name"],
            namespace=document["metadata"].get("namespace"),
            content_type=MERGE_PATCH,
            **kwargs,
        )
        return patched.to_dict()

    def list_pods(self, namespace: str, limit: int) -> List[str]:
        pods = self.core.list_namespaced_pod(namespace=namespace, limit=limit)
        return [pod.metadata.name for pod in pods.items or [] if pod.metadata and pod.metadata.name]

    def read_pod_log(self, namespace: str, pod: str, tail_lines: int) -> str:
        try:
            return self.core.read_namespaced_pod_log(
                name=pod, namespace=namespace, tail_lines=tail_lines
            ) or ""
        except ApiException as e:
            if e.status == 404:
                raise ResourceNotFound("Pod", namespace, pod)
            raise
