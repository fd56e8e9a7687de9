"""
KubeForge agent data models.

These models define the structure of all data exchanged with the
control plane and passed between the agent's modules.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Enums


class CommandType(str, Enum):
    """Operations the agent knows how to execute."""

    LIST_NAMESPACES = "list_namespaces"
    LIST_RESOURCES = "list_resources"
    GET_MANIFESTS = "get_manifests"
    APPLY_MANIFEST = "apply_manifest"
    GET_LOGS = "get_logs"


class CommandStatus(str, Enum):
    """Terminal status of a command."""

    COMPLETED = "completed"
    FAILED = "failed"


class WireModel(BaseModel):
    """Base for models that use camelCase aliases on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with wire aliases, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# Control plane protocol


class RegistrationRequest(WireModel):
    """Registration payload sent once at startup."""

    token: str
    cluster_name: str = Field(..., alias="clusterName")
    cluster_version: Optional[str] = Field(None, alias="clusterVersion")


class RegistrationResponse(WireModel):
    """Identity assigned by the control plane."""

    agent_id: str = Field(..., alias="agentId", min_length=1)
    connection_id: Optional[str] = Field(None, alias="connectionId")


class Command(BaseModel):
    """A unit of work handed out by the control plane.

    ``type`` stays a plain string and ``payload`` stays untyped so that
    commands of unknown type or with a malformed payload can still be
    received and answered with a failed result.
    """

    id: str
    type: str
    payload: Any = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def lenient_fields(cls, data: Any) -> Any:
        """Treat a null payload as empty and a missing or odd type as text."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("payload") is None:
            data["payload"] = {}
        if not isinstance(data.get("type"), str):
            data["type"] = "" if data.get("type") is None else str(data["type"])
        return data


class PollResponse(BaseModel):
    """Long-poll response; ``command`` is absent when there is no work."""

    command: Optional[Command] = None


class CommandResult(BaseModel):
    """Exactly one of these is produced for every command."""

    status: CommandStatus
    result: Optional[Any] = None
    error: Optional[str] = None

    @classmethod
    def completed(cls, result: Any) -> "CommandResult":
        return cls(status=CommandStatus.COMPLETED, result=result)

    @classmethod
    def failed(cls, error: str) -> "CommandResult":
        return cls(status=CommandStatus.FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.status == CommandStatus.COMPLETED


class ResultSubmission(WireModel):
    """Body of the result report."""

    agent_id: str = Field(..., alias="agentId")
    command_id: str = Field(..., alias="commandId")
    status: CommandStatus
    result: Optional[Any] = None
    error: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        # Only top-level absent fields are dropped; nulls inside result stay
        body = {
            "agentId": self.agent_id,
            "commandId": self.command_id,
            "status": self.status.value,
        }
        if self.result is not None:
            body["result"] = self.result
        if self.error is not None:
            body["error"] = self.error
        return body


# Command payloads


class NamespacePayload(WireModel):
    """Payload carrying only a namespace (list_resources)."""

    namespace: str = Field(..., min_length=1)


class ResourceSelector(WireModel):
    """A (kind, name) pair requested by get_manifests."""

    kind: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)


class GetManifestsPayload(NamespacePayload):
    resources: List[ResourceSelector] = Field(default_factory=list)


class ApplyManifestPayload(NamespacePayload):
    manifests: List[str] = Field(default_factory=list)
    dry_run: bool = Field(False, alias="dryRun")


class GetLogsPayload(NamespacePayload):
    pod_name: Optional[str] = Field(None, alias="podName")
    search: Optional[str] = None
    tail_lines: int = Field(200, alias="tailLines", ge=1)


# Results


class ResourceReference(WireModel):
    """Lightweight locator for a cluster resource; never holds the body."""

    kind: str
    api_version: str = Field(..., alias="apiVersion")
    name: str
    namespace: str


class PodLog(WireModel):
    """Trailing log text of a single pod."""

    pod: str
    logs: str


class ApplyOutcome(WireModel):
    """Result of reconciling a single manifest."""

    resource: str
    success: bool
    action: str
    error: Optional[str] = None
    changes: List[str] = Field(default_factory=list)


class ApplyBatchResult(WireModel):
    """Aggregate result of an apply_manifest command."""

    results: List[ApplyOutcome] = Field(default_factory=list)
    log: str = ""
    dry_run: bool = Field(False, alias="dryRun")

    @property
    def passed(self) -> int:
        return sum(1 for outcome in self.results if outcome.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.passed

    def to_wire(self) -> Dict[str, Any]:
        # Per-resource change lists are kept even when empty
        return self.model_dump(by_alias=True, mode="json")
