"""
Manifest reconciler.

Applies a batch of manifests to one namespace with read-then-create-or-
patch semantics. In dry-run mode every call goes to the API server with
server-side dry run, and a change plan is computed for the preview.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from kubeforge.modules.api import ApplyBatchResult, ApplyOutcome
from kubeforge.modules.cluster import ResourceNotFound, ResourceProvider

from .cleaning import clean_manifest
from .codec import load_manifest
from .diff import Change, deep_diff, render_changes, summarize

logger = logging.getLogger("kubeforge.manifest.reconciler")

PLACEHOLDER_NAME = "unnamed"
CHANGE_INDENT = "  "


@dataclass
class _Attempt:
    """Mutable state of one manifest's reconciliation."""

    label: str = "Unknown/unnamed"
    action: str = ""
    changes: List[Change] = field(default_factory=list)
    dry_run_update: bool = False


def _label(document: Optional[Dict[str, Any]]) -> str:
    if not document:
        return "Unknown/unnamed"
    metadata = document.get("metadata") if isinstance(document.get("metadata"), dict) else {}
    return f"{document.get('kind') or 'Unknown'}/{metadata.get('name') or PLACEHOLDER_NAME}"


def prepare_document(text: str, namespace: str) -> Dict[str, Any]:
    """
    Parse a manifest and fill in namespace and name defaults.

    Args:
        text: Manifest YAML for a single resource
        namespace: Namespace used when the manifest names none

    Returns:
        The parsed document, owned by the caller
    """
    document = load_manifest(text)

    metadata = document.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
        document["metadata"] = metadata
    if not metadata.get("name"):
        metadata["name"] = PLACEHOLDER_NAME
    if not metadata.get("namespace"):
        metadata["namespace"] = namespace

    return document


class ManifestReconciler:
    """Reconcile manifest batches against a ResourceProvider."""

    def __init__(self, provider: ResourceProvider):
        self.provider = provider

    def apply(self, manifests: List[str], namespace: str, dry_run: bool = False) -> ApplyBatchResult:
        """
        Apply a batch of manifests.

        Each manifest is handled on its own: a failure is recorded in its
        outcome and the batch moves on to the next one.

        Args:
            manifests: Manifest texts, one resource each
            namespace: Default namespace for manifests without one
            dry_run: Validate and preview without changing the cluster

        Returns:
            ApplyBatchResult with one outcome per manifest and a text log
        """
        mode = "Dry run" if dry_run else "Apply"
        log_lines = [f"{mode}: {len(manifests)} resource(s) to namespace {namespace}"]
        outcomes: List[ApplyOutcome] = []

        for text in manifests:
            attempt = _Attempt()
            try:
                self._reconcile(text, namespace, dry_run, attempt)
            except Exception as e:
                logger.warning(f"Failed to apply {attempt.label}: {e}")
                outcome = ApplyOutcome(
                    resource=attempt.label,
                    success=False,
                    action=f"failed: {e}",
                    error=str(e),
                )
            else:
                logger.info(f"{attempt.label} {attempt.action}")
                outcome = ApplyOutcome(
                    resource=attempt.label,
                    success=True,
                    action=attempt.action,
                    changes=render_changes(attempt.changes),
                )

            outcomes.append(outcome)
            log_lines.append(f"{outcome.resource}: {outcome.action}")
            log_lines.extend(CHANGE_INDENT + line for line in outcome.changes)
            if attempt.dry_run_update and outcome.success and not outcome.changes:
                log_lines.append(f"{CHANGE_INDENT}(no changes)")

        batch = ApplyBatchResult(results=outcomes, dry_run=dry_run)
        log_lines.append(f"Done: {batch.passed} passed, {batch.failed} failed")
        batch.log = "\n".join(log_lines)
        return batch

    def _reconcile(self, text: str, namespace: str, dry_run: bool, attempt: _Attempt) -> None:
        document = prepare_document(text, namespace)
        attempt.label = _label(document)
        metadata = document["metadata"]

        live = self._read_live(document)

        if live is not None:
            self.provider.patch(document, dry_run=dry_run)
            if dry_run:
                attempt.changes = deep_diff(clean_manifest(live), clean_manifest(document))
                attempt.dry_run_update = True
                attempt.action = "validated (would update)"
            else:
                attempt.action = "configured"
        else:
            self.provider.create(document, dry_run=dry_run)
            if dry_run:
                attempt.changes = summarize(clean_manifest(document))
                attempt.action = "validated (would create)"
            else:
                attempt.action = "created"

        logger.debug(f"Reconciled {attempt.label} in namespace {metadata['namespace']}")

    def _read_live(self, document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Fetch the live snapshot; None when the resource does not exist."""
        metadata = document["metadata"]
        try:
            return self.provider.read(
                document.get("apiVersion", ""),
                document["kind"],
                metadata["namespace"],
                metadata["name"],
            )
        except ResourceNotFound:
            return None
