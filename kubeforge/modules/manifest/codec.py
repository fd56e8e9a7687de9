"""YAML codec for manifest documents."""

from typing import Any, Dict, Iterable

import yaml

DOCUMENT_SEPARATOR = "---\n"


class ManifestError(ValueError):
    """Manifest text could not be turned into a usable document."""


def load_manifest(text: str) -> Dict[str, Any]:
    """
    Parse a single manifest document.

    Args:
        text: YAML text holding exactly one resource

    Returns:
        The parsed document

    Raises:
        ManifestError: Invalid YAML, not a mapping, or no kind
    """
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML: {e}") from e

    if not isinstance(document, dict):
        raise ManifestError("Manifest must be a YAML mapping")
    if not document.get("kind"):
        raise ManifestError("Manifest is missing 'kind'")
    return document


def dump_manifest(document: Dict[str, Any]) -> str:
    """Serialize a document as block-style YAML without line wrapping."""
    return yaml.safe_dump(
        document,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
    )


def dump_manifests(documents: Iterable[Dict[str, Any]]) -> str:
    """Serialize documents as one multi-document YAML string."""
    return DOCUMENT_SEPARATOR.join(dump_manifest(document) for document in documents)
