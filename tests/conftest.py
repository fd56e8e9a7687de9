"""
Shared pytest fixtures for KubeForge agent tests.

This module provides common fixtures including:
- FakeResourceProvider: In-memory cluster with call recording
- Agent configuration and control plane client mocks
"""

import copy
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from kubeforge.config import AgentConfig
from kubeforge.modules.cluster import ResourceKind, ResourceNotFound


# =============================================================================
# Cluster Fake
# =============================================================================

@dataclass
class ProviderCall:
    """Record of a provider call made during testing."""
    method: str
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)


class FakeResourceProvider:
    """
    In-memory ResourceProvider.

    Resources are stored by (kind, namespace, name). Failures can be
    injected per kind (listing), per resource (reads, writes) or per pod
    (logs), which lets tests exercise partial-failure paths without a
    cluster.

    Usage:
        def test_something(fake_provider):
            fake_provider.add(configmap("app-config"))
            fake_provider.fail_listing("Secret")
            ...
            assert fake_provider.was_called("list_resources")
    """

    SERVER_FIELDS = {
        "uid": "6f1c2b0e-0000-4000-8000-000000000001",
        "resourceVersion": "12345",
        "creationTimestamp": "2026-01-01T00:00:00Z",
        "generation": 1,
        "managedFields": [{"manager": "kubectl", "operation": "Update"}],
    }

    def __init__(self):
        self.resources: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
        self.namespaces: List[Dict[str, Any]] = []
        self.pod_logs: Dict[Tuple[str, str], str] = {}
        self.version: Optional[str] = "v1.29.2"
        self._listing_failures: Dict[str, Exception] = {}
        self._read_failures: Dict[Tuple[str, str], Exception] = {}
        self._write_failures: Dict[Tuple[str, str], Exception] = {}
        self._log_failures: Dict[str, Exception] = {}
        self._calls: List[ProviderCall] = []

    # Setup helpers

    def add(self, document: Dict[str, Any], with_server_fields: bool = True) -> Dict[str, Any]:
        """Store a resource as the API server would return it."""
        stored = copy.deepcopy(document)
        metadata = stored.setdefault("metadata", {})
        metadata.setdefault("namespace", "default")
        if with_server_fields:
            for key, value in self.SERVER_FIELDS.items():
                metadata.setdefault(key, copy.deepcopy(value))
            stored.setdefault("status", {"observedGeneration": 1})
        key = (stored["kind"], metadata["namespace"], metadata["name"])
        self.resources[key] = stored
        return stored

    def add_pod(self, name: str, namespace: str = "default", logs: Optional[str] = None) -> None:
        self.add({"apiVersion": "v1", "kind": "Pod", "metadata": {"name": name, "namespace": namespace}})
        if logs is not None:
            self.pod_logs[(namespace, name)] = logs

    def fail_listing(self, kind: str, error: Optional[Exception] = None) -> None:
        self._listing_failures[kind] = error or RuntimeError(f"cannot list {kind}")

    def fail_read(self, kind: str, name: str, error: Optional[Exception] = None) -> None:
        self._read_failures[(kind, name)] = error or RuntimeError(f"cannot read {kind}/{name}")

    def fail_write(self, kind: str, name: str, error: Optional[Exception] = None) -> None:
        self._write_failures[(kind, name)] = error or RuntimeError(f"admission denied {kind}/{name}")

    def fail_logs(self, pod: str, error: Optional[Exception] = None) -> None:
        self._log_failures[pod] = error or RuntimeError(f"container not running in {pod}")

    # Call tracking

    def _record(self, method: str, *args: Any, **kwargs: Any) -> None:
        self._calls.append(ProviderCall(method, args, kwargs))

    @property
    def calls(self) -> List[ProviderCall]:
        return self._calls

    def calls_to(self, method: str) -> List[ProviderCall]:
        return [call for call in self._calls if call.method == method]

    def was_called(self, method: str) -> bool:
        return bool(self.calls_to(method))

    # ResourceProvider protocol

    def server_version(self) -> Optional[str]:
        self._record("server_version")
        if self.version is None:
            raise RuntimeError("version endpoint unavailable")
        return self.version

    def list_namespaces(self) -> List[Dict[str, Any]]:
        self._record("list_namespaces")
        return copy.deepcopy(self.namespaces)

    def list_resources(self, kind: ResourceKind, namespace: str) -> List[Dict[str, Any]]:
        self._record("list_resources", kind.kind, namespace)
        if kind.kind in self._listing_failures:
            raise self._listing_failures[kind.kind]
        return [
            copy.deepcopy(doc)
            for (doc_kind, doc_ns, _), doc in self.resources.items()
            if doc_kind == kind.kind and doc_ns == namespace
        ]

    def read(self, api_version: str, kind: str, namespace: str, name: str) -> Dict[str, Any]:
        self._record("read", api_version, kind, namespace, name)
        if (kind, name) in self._read_failures:
            raise self._read_failures[(kind, name)]
        try:
            return copy.deepcopy(self.resources[(kind, namespace, name)])
        except KeyError:
            raise ResourceNotFound(kind, namespace, name)

    def _write(self, method: str, document: Dict[str, Any], dry_run: bool) -> Dict[str, Any]:
        self._record(method, copy.deepcopy(document), dry_run=dry_run)
        metadata = document["metadata"]
        if (document["kind"], metadata["name"]) in self._write_failures:
            raise self._write_failures[(document["kind"], metadata["name"])]
        if dry_run:
            return copy.deepcopy(document)
        return self.add(document)

    def create(self, document: Dict[str, Any], dry_run: bool = False) -> Dict[str, Any]:
        return self._write("create", document, dry_run)

    def patch(self, document: Dict[str, Any], dry_run: bool = False) -> Dict[str, Any]:
        return self._write("patch", document, dry_run)

    def list_pods(self, namespace: str, limit: int) -> List[str]:
        self._record("list_pods", namespace, limit)
        names = [name for (kind, ns, name) in self.resources if kind == "Pod" and ns == namespace]
        return names[:limit]

    def read_pod_log(self, namespace: str, pod: str, tail_lines: int) -> str:
        self._record("read_pod_log", namespace, pod, tail_lines)
        if pod in self._log_failures:
            raise self._log_failures[pod]
        if (namespace, pod) not in self.pod_logs:
            raise ResourceNotFound("Pod", namespace, pod)
        lines = self.pod_logs[(namespace, pod)].splitlines()
        return "\n".join(lines[-tail_lines:])


# =============================================================================
# Manifest Builders
# =============================================================================

def configmap(name: str, data: Optional[Dict[str, str]] = None, namespace: Optional[str] = None) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {"name": name}
    if namespace:
        metadata["namespace"] = namespace
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": metadata,
        "data": data if data is not None else {"LOG_LEVEL": "info"},
    }


def deployment(name: str, image: str = "nginx:1.25", replicas: int = 2,
               namespace: Optional[str] = None) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {"name": name, "labels": {"app": name}}
    if namespace:
        metadata["namespace"] = namespace
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": metadata,
        "spec": {
            "replicas": replicas,
            "selector": {"matchLabels": {"app": name}},
            "template": {
                "metadata": {"labels": {"app": name}},
                "spec": {
                    "containers": [
                        {"name": name, "image": image, "ports": [{"containerPort": 80}]}
                    ]
                },
            },
        },
    }


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_provider():
    """Empty in-memory cluster."""
    return FakeResourceProvider()


@pytest.fixture
def agent_config():
    """Agent configuration with zero delays so loops never sleep."""
    return AgentConfig(
        token="test-token-abc123",
        api_url="https://control.example.com",
        cluster_name="test-cluster",
        register_retry_delay=0,
        poll_error_backoff=0,
    )


@pytest.fixture
def mock_client():
    """Control plane client mock."""
    client = MagicMock()
    client.register = MagicMock()
    client.poll = MagicMock(return_value=None)
    client.submit_result = MagicMock()
    return client


# =============================================================================
# Test Markers Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "diff: Tests of the structural diff engine"
    )
    config.addinivalue_line(
        "markers", "reconcile: Tests of manifest reconciliation"
    )
    config.addinivalue_line(
        "markers", "agent: Tests of the agent control loop"
    )
