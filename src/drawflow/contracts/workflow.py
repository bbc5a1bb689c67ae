# src/drawflow/contracts/workflow.py
"""Workflow entity records and the node payload exchanged between tasks.

All records are immutable. Stores return fresh records; updates go
through the store and come back as new instances.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from drawflow.contracts.enums import (
    DrawDocumentType,
    ProcessingStatus,
    WorkflowDomain,
    WorkflowInstanceStatus,
    WorkflowLogLevel,
    WorkflowMessageKey,
    WorkflowMimeDataType,
)


@dataclass(frozen=True, slots=True)
class WorkflowNodeRecord:
    """A user-authored node as stored. node_type is unvalidated text."""

    id: str
    workflow_instance_id: str
    node_type: str
    name: str | None = None


@dataclass(frozen=True, slots=True)
class WorkflowEdgeRecord:
    id: str
    workflow_instance_id: str
    source_node_id: str
    target_node_id: str


@dataclass(frozen=True, slots=True)
class DrawDocument:
    """A stored document, optionally linked to the data node that supplies it."""

    id: str
    organization_id: str
    name: str
    filename: str
    content_type: str
    blob_key: str
    document_type: DrawDocumentType
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    workflow_node_id: str | None = None


@dataclass(frozen=True, slots=True)
class WorkflowInstance:
    id: str
    organization_id: str
    workflow_id: str
    status: WorkflowInstanceStatus = WorkflowInstanceStatus.BUILD_NEEDED
    definition_key: str | None = None
    execution_handle: str | None = None


@dataclass(frozen=True, slots=True)
class WorkflowJob:
    """One execution of a built workflow instance."""

    id: str
    organization_id: str
    workflow_instance_id: str
    execution_handle: str | None = None
    pre_execution_failure: bool = False


@dataclass(frozen=True, slots=True)
class WorkflowJobLog:
    """Append-only log entry attached to a job."""

    id: str
    workflow_job_id: str
    level: WorkflowLogLevel
    message_key: WorkflowMessageKey
    message_params: tuple[tuple[str, str], ...] = ()
    workflow_node_id: str | None = None


@dataclass(frozen=True, slots=True)
class NodeMime:
    type: WorkflowMimeDataType
    domain: WorkflowDomain
    domain_model: str


@dataclass(frozen=True, slots=True)
class NodeData:
    """A blob-backed artifact produced or consumed by a node."""

    uri: str
    mime: NodeMime

    def to_dict(self) -> dict[str, Any]:
        return {
            "uri": self.uri,
            "mime": {
                "type": str(self.mime.type),
                "domain": str(self.mime.domain),
                "domain_model": self.mime.domain_model,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodeData:
        mime = data["mime"]
        return cls(
            uri=data["uri"],
            mime=NodeMime(
                type=WorkflowMimeDataType(mime["type"]),
                domain=WorkflowDomain(mime["domain"]),
                domain_model=mime["domain_model"],
            ),
        )


@dataclass(frozen=True, slots=True)
class WorkflowNodeResult:
    id: str
    workflow_job_id: str
    node_id: str
    results: tuple[NodeData, ...] = ()


@dataclass(frozen=True, slots=True)
class NodeContext:
    organization_id: str
    workflow_job_id: str
    node_id: str
    previous_node_id: str | None = None


@dataclass(frozen=True, slots=True)
class NodePayload:
    """State handed to a node handler by the execution engine.

    node_override_data holds inputs supplied by data nodes, keyed by the
    functional node they feed. node_result_data accumulates the results of
    every node that has run so far, keyed by node id.
    """

    context: NodeContext
    node_override_data: dict[str, list[NodeData]] = field(default_factory=dict)
    node_result_data: dict[str, list[NodeData]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NodePayload:
        context = data["context"]
        return cls(
            context=NodeContext(
                organization_id=context["organization_id"],
                workflow_job_id=context["workflow_job_id"],
                node_id=context["node_id"],
                previous_node_id=context.get("previous_node_id"),
            ),
            node_override_data={k: [NodeData.from_dict(d) for d in v] for k, v in data.get("node_override_data", {}).items()},
            node_result_data={k: [NodeData.from_dict(d) for d in v] for k, v in data.get("node_result_data", {}).items()},
        )

    def to_dict(self) -> dict[str, Any]:
        context: dict[str, Any] = {
            "organization_id": self.context.organization_id,
            "workflow_job_id": self.context.workflow_job_id,
            "node_id": self.context.node_id,
        }
        if self.context.previous_node_id is not None:
            context["previous_node_id"] = self.context.previous_node_id
        return {
            "context": context,
            "node_override_data": {k: [d.to_dict() for d in v] for k, v in self.node_override_data.items()},
            "node_result_data": {k: [d.to_dict() for d in v] for k, v in self.node_result_data.items()},
        }
