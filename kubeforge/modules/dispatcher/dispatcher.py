#!/usr/bin/env python3
"""
Command dispatcher for the KubeForge agent.

Maps each command type to one operation against the cluster. Failures
of individual items inside an operation (one resource kind, one
manifest, one pod) are handled locally; only an uninterpretable command
fails as a whole.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel

from kubeforge.modules.api import (
    ApplyManifestPayload,
    Command,
    CommandResult,
    CommandType,
    GetLogsPayload,
    GetManifestsPayload,
    NamespacePayload,
    PodLog,
    ResourceReference,
)
from kubeforge.modules.cluster import RESOURCE_CATALOG, ResourceKind, ResourceProvider, lookup_kind
from kubeforge.modules.manifest import ManifestReconciler, clean_manifest, dump_manifests

logger = logging.getLogger("kubeforge.dispatcher")

# Log collection limits when no pod is named
MAX_PODS_PER_NAMESPACE = 50
NAMESPACE_TAIL_LINES = 100


class EmptyPayload(BaseModel):
    """Payload of commands that take no arguments."""


def filter_lines(text: str, search: Optional[str]) -> str:
    """Keep only lines containing ``search``, ignoring case."""
    if not search:
        return text
    needle = search.lower()
    return "\n".join(line for line in text.splitlines() if needle in line.lower())


def _name_of(document: Dict[str, Any]) -> str:
    metadata = document.get("metadata") or {}
    return metadata.get("name") or ""


class CommandDispatcher:
    """Execute commands against a ResourceProvider."""

    def __init__(self, provider: ResourceProvider, reconciler: Optional[ManifestReconciler] = None,
                 catalog: Optional[List[ResourceKind]] = None):
        """
        Initialize dispatcher.

        Args:
            provider: Cluster access used by every operation
            reconciler: Manifest reconciler; built on ``provider`` when omitted
            catalog: Resource kinds enumerated by list_resources
        """
        self.provider = provider
        self.reconciler = reconciler or ManifestReconciler(provider)
        self.catalog = catalog if catalog is not None else RESOURCE_CATALOG
        self._handlers: Dict[CommandType, Tuple[Type[BaseModel], Callable[[Any], Any]]] = {
            CommandType.LIST_NAMESPACES: (EmptyPayload, self.list_namespaces),
            CommandType.LIST_RESOURCES: (NamespacePayload, self.list_resources),
            CommandType.GET_MANIFESTS: (GetManifestsPayload, self.get_manifests),
            CommandType.APPLY_MANIFEST: (ApplyManifestPayload, self.apply_manifest),
            CommandType.GET_LOGS: (GetLogsPayload, self.get_logs),
        }

    def dispatch(self, command: Command) -> CommandResult:
        """
        Execute a command.

        Args:
            command: Command received from the control plane

        Returns:
            Completed result, or a failed result for unknown command types

        Raises:
            pydantic.ValidationError: Payload does not match the command type
            Exception: Any failure that makes the whole command unusable
        """
        try:
            command_type = CommandType(command.type)
        except ValueError:
            logger.warning(f"Unknown command type {command.type!r} for command {command.id}")
            return CommandResult.failed(f"Unknown command type: {command.type}")

        payload_model, handler = self._handlers[command_type]
        payload = payload_model.model_validate(command.payload)
        return CommandResult.completed(handler(payload))

    def list_namespaces(self, payload: EmptyPayload) -> List[str]:
        return [name for name in map(_name_of, self.provider.list_namespaces()) if name]

    def list_resources(self, payload: NamespacePayload) -> List[Dict[str, Any]]:
        """
        Enumerate every catalog kind in a namespace.

        Kinds are listed concurrently. A kind that cannot be listed is
        logged and left out; the others are still returned.
        """
        namespace = payload.namespace
        if not self.catalog:
            return []

        with ThreadPoolExecutor(max_workers=len(self.catalog)) as pool:
            futures = [
                (kind, pool.submit(self.provider.list_resources, kind, namespace))
                for kind in self.catalog
            ]

        references: List[Dict[str, Any]] = []
        for kind, future in futures:
            try:
                items = future.result()
            except Exception as e:
                logger.warning(f"Failed to list {kind.kind} in {namespace}: {e}")
                continue
            references.extend(
                ResourceReference(
                    kind=kind.kind,
                    api_version=kind.api_version,
                    name=_name_of(item),
                    namespace=namespace,
                ).to_wire()
                for item in items
            )
        return references

    def get_manifests(self, payload: GetManifestsPayload) -> str:
        """
        Fetch resources and return them as one multi-document YAML string.

        Items are read one by one in request order; items that cannot be
        read are logged and skipped.
        """
        documents = []
        for selector in payload.resources:
            kind = lookup_kind(selector.kind)
            if kind is None:
                logger.warning(f"Skipping {selector.kind}/{selector.name}: unsupported kind")
                continue
            try:
                live = self.provider.read(kind.api_version, kind.kind, payload.namespace, selector.name)
            except Exception as e:
                logger.warning(f"Failed to fetch {selector.kind}/{selector.name}: {e}")
                continue
            documents.append(clean_manifest(live))
        return dump_manifests(documents)

    def apply_manifest(self, payload: ApplyManifestPayload) -> Dict[str, Any]:
        batch = self.reconciler.apply(payload.manifests, payload.namespace, dry_run=payload.dry_run)
        logger.info(
            f"Applied {len(batch.results)} manifest(s) to {payload.namespace}: "
            f"{batch.passed} passed, {batch.failed} failed"
        )
        return batch.to_wire()

    def get_logs(self, payload: GetLogsPayload) -> List[Dict[str, Any]]:
        """
        Collect pod logs.

        With a pod name, returns that pod's trailing lines. Without one,
        samples the namespace's pods, skipping pods without readable logs
        and pods with nothing left after filtering.
        """
        if payload.pod_name:
            text = self.provider.read_pod_log(payload.namespace, payload.pod_name, payload.tail_lines)
            return [PodLog(pod=payload.pod_name, logs=filter_lines(text, payload.search)).to_wire()]

        logs = []
        for pod in self.provider.list_pods(payload.namespace, MAX_PODS_PER_NAMESPACE)[:MAX_PODS_PER_NAMESPACE]:
            try:
                text = self.provider.read_pod_log(payload.namespace, pod, NAMESPACE_TAIL_LINES)
            except Exception as e:
                logger.debug(f"Logs unavailable for pod {pod}: {e}")
                continue
            filtered = filter_lines(text, payload.search)
            if filtered.strip():
                logs.append(PodLog(pod=pod, logs=filtered).to_wire())
        return logs
