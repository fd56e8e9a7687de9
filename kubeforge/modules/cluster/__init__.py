"""
Cluster Module - Black Box Interface

Purpose: Access Kubernetes resources on behalf of the agent
Interface: ResourceProvider protocol, RESOURCE_CATALOG
Hidden: Kubernetes client, discovery, API group routing

Can be replaced with a different client (kubectl subprocess, fake for tests).
"""

from .provider import (
    RESOURCE_CATALOG,
    KubernetesResourceProvider,
    ResourceKind,
    ResourceNotFound,
    ResourceProvider,
    load_kube_config,
    lookup_kind,
)

__all__ = [
    "RESOURCE_CATALOG",
    "KubernetesResourceProvider",
    "ResourceKind",
    "ResourceNotFound",
    "ResourceProvider",
    "load_kube_config",
    "lookup_kind",
]
