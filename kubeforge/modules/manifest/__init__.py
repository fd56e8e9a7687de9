"""
Manifest Module - Black Box Interface

Purpose: Turn manifest text into cluster changes and change previews
Interface: ManifestReconciler.apply(), clean_manifest(), deep_diff(), summarize()
Hidden: YAML handling, server-managed field rules, diff rendering
"""

from .cleaning import clean_manifest
from .codec import ManifestError, dump_manifest, dump_manifests, load_manifest
from .diff import Change, ChangeOp, deep_diff, render_value, summarize
from .reconciler import ManifestReconciler, prepare_document

__all__ = [
    "Change",
    "ChangeOp",
    "ManifestError",
    "ManifestReconciler",
    "clean_manifest",
    "deep_diff",
    "dump_manifest",
    "dump_manifests",
    "load_manifest",
    "prepare_document",
    "render_value",
    "summarize",
]
