"""
API Module - Black Box Interface

Purpose: Wire models shared between the agent and the control plane
Interface: pydantic models for commands, payloads and results
Hidden: Field aliases, validation rules
"""

from .models import (
    ApplyBatchResult,
    ApplyManifestPayload,
    ApplyOutcome,
    Command,
    CommandResult,
    CommandStatus,
    CommandType,
    GetLogsPayload,
    GetManifestsPayload,
    NamespacePayload,
    PodLog,
    PollResponse,
    RegistrationRequest,
    RegistrationResponse,
    ResourceReference,
    ResourceSelector,
    ResultSubmission,
)

__all__ = [
    "ApplyBatchResult",
    "ApplyManifestPayload",
    "ApplyOutcome",
    "Command",
    "CommandResult",
    "CommandStatus",
    "CommandType",
    "GetLogsPayload",
    "GetManifestsPayload",
    "NamespacePayload",
    "PodLog",
    "PollResponse",
    "RegistrationRequest",
    "RegistrationResponse",
    "ResourceReference",
    "ResourceSelector",
    "ResultSubmission",
]
