"""Strip server-managed fields from resource documents."""

import copy
from typing import Any, Dict

SERVER_METADATA_FIELDS = (
    "managedFields",
    "resourceVersion",
    "uid",
    "creationTimestamp",
    "generation",
    "selfLink",
)

AUTO_ANNOTATIONS = (
    "kubectl.kubernetes.io/last-applied-configuration",
    "deployment.kubernetes.io/revision",
)


def clean_manifest(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of ``document`` without server-managed state.

    Removes ``status``, server-populated metadata and auto-injected
    annotations, then drops annotation or label maps left empty.
    The input is never modified and cleaning an already clean
    document returns an equal document.
    """
    cleaned = copy.deepcopy(document)
    cleaned.pop("status", None)

    metadata = cleaned.get("metadata")
    if not isinstance(metadata, dict):
        return cleaned

    for field in SERVER_METADATA_FIELDS:
        metadata.pop(field, None)

    annotations = metadata.get("annotations")
    if isinstance(annotations, dict):
        for key in AUTO_ANNOTATIONS:
            annotations.pop(key, None)

    for key in ("annotations", "labels"):
        if key in metadata and not metadata[key]:
            del metadata[key]

    return cleaned
