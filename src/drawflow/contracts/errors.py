# src/drawflow/contracts/errors.py
"""Exception taxonomy shared by the compiler, orchestrator, draw engine and nodes.

Errors that derive from LoggableWorkflowError carry a message key and
structured parameters. The orchestrator and node wrapper persist those to
the job log so that end users can see what went wrong with their workflow.
Every other error is an internal or infrastructure failure and is only
logged for operators.
"""

from __future__ import annotations

from collections.abc import Iterable

from drawflow.contracts.enums import WorkflowMessageKey

MessageParams = tuple[tuple[str, str], ...]


class LoggableWorkflowError(Exception):
    """Base for errors that are recorded on the job log.

    Attributes:
        message_key: Key identifying the message template
        message_params: Ordered (key, value) pairs filling the template
    """

    def __init__(
        self,
        message: str,
        message_key: WorkflowMessageKey,
        message_params: Iterable[tuple[str, str]] = (),
    ) -> None:
        self.message_key = message_key
        self.message_params: MessageParams = tuple(message_params)
        super().__init__(message)


# =============================================================================
# Structural graph errors
# =============================================================================


class StructuralGraphError(LoggableWorkflowError):
    """The workflow graph cannot be compiled into a linear chain."""


class NoStartNodeFoundError(StructuralGraphError):
    def __init__(self) -> None:
        super().__init__("No start node found", WorkflowMessageKey.NO_START_NODE_FOUND)


class MultipleStartNodesFoundError(StructuralGraphError):
    def __init__(self, node_ids: Iterable[str]) -> None:
        self.node_ids = tuple(node_ids)
        super().__init__(
            f"Multiple start nodes found: {', '.join(self.node_ids)}",
            WorkflowMessageKey.MULTIPLE_START_NODES_FOUND,
            [("workflowNodeIds", ",".join(self.node_ids))],
        )


class MultipleEndNodesFoundError(StructuralGraphError):
    def __init__(self, node_ids: Iterable[str]) -> None:
        self.node_ids = tuple(node_ids)
        super().__init__(
            f"Multiple end nodes found: {', '.join(self.node_ids)}",
            WorkflowMessageKey.MULTIPLE_END_NODES_FOUND,
            [("workflowNodeIds", ",".join(self.node_ids))],
        )


class ParallelNodesNotSupportedError(StructuralGraphError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(
            f"Node {node_id} has more than one target",
            WorkflowMessageKey.PARALLEL_NODES_NOT_SUPPORTED,
            [("workflowNodeId", node_id)],
        )


class CycleDetectedError(StructuralGraphError):
    """A functional node was reached again while still on the walk path.

    Attributes:
        node_id: The node that was revisited
    """

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(
            f"Cycle detected at node {node_id}",
            WorkflowMessageKey.CYCLE_DETECTED,
            [("workflowNodeId", node_id)],
        )


class EdgeHasInvalidSourceError(StructuralGraphError):
    def __init__(self, edge_id: str, node_id: str) -> None:
        self.edge_id = edge_id
        self.node_id = node_id
        super().__init__(
            f"Edge {edge_id} references unknown source node {node_id}",
            WorkflowMessageKey.EDGE_HAS_INVALID_SOURCE,
            [("workflowEdgeId", edge_id), ("workflowNodeId", node_id)],
        )


class EdgeHasInvalidTargetError(StructuralGraphError):
    def __init__(self, edge_id: str, node_id: str) -> None:
        self.edge_id = edge_id
        self.node_id = node_id
        super().__init__(
            f"Edge {edge_id} references unknown target node {node_id}",
            WorkflowMessageKey.EDGE_HAS_INVALID_TARGET,
            [("workflowEdgeId", edge_id), ("workflowNodeId", node_id)],
        )


class InvalidNodeTypeError(StructuralGraphError):
    def __init__(self, node_id: str, node_type: str) -> None:
        self.node_id = node_id
        self.node_type = node_type
        super().__init__(
            f"Node {node_id} has invalid type {node_type!r}",
            WorkflowMessageKey.INVALID_NODE_TYPE,
            [("workflowNodeId", node_id), ("workflowNodeType", node_type)],
        )


# =============================================================================
# Data resolution errors
# =============================================================================


class DataResolutionError(LoggableWorkflowError):
    """A node's inputs or backing resource could not be resolved."""


class DataNodeHasNoDocumentError(DataResolutionError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(
            f"Data node {node_id} has no document",
            WorkflowMessageKey.DATA_NODE_HAS_NO_DOCUMENT,
            [("workflowNodeId", node_id)],
        )


class InvalidMimeTypeError(DataResolutionError):
    def __init__(self, node_id: str, mime_type: str) -> None:
        self.node_id = node_id
        self.mime_type = mime_type
        super().__init__(
            f"Data node {node_id} has unsupported content type {mime_type!r}",
            WorkflowMessageKey.INVALID_MIME_TYPE,
            [("workflowNodeId", node_id), ("mimeType", mime_type)],
        )


class NoResourceFoundError(DataResolutionError):
    def __init__(self, node_id: str, node_type: str) -> None:
        self.node_id = node_id
        self.node_type = node_type
        super().__init__(
            f"No resource registered for node {node_id} of type {node_type}",
            WorkflowMessageKey.NO_RESOURCE_FOUND,
            [("workflowNodeId", node_id), ("workflowNodeType", node_type)],
        )


class BuildTimeoutError(LoggableWorkflowError):
    """The execution resource did not become ready within the configured bound."""

    def __init__(self, resource_handle: str, timeout_seconds: float) -> None:
        self.resource_handle = resource_handle
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Resource {resource_handle} not ready after {timeout_seconds}s",
            WorkflowMessageKey.READY_TIMEOUT,
            [("resourceHandle", resource_handle), ("timeoutSeconds", str(timeout_seconds))],
        )


# =============================================================================
# Draw and row validation errors
# =============================================================================


class DrawSemanticError(ValueError):
    """The draw inputs or configuration are inconsistent.

    Raised before or during allocation. Never logged to the job log.
    """


class RowValidationError(ValueError):
    """A CSV row failed validation.

    Attributes:
        record: Identifier of the failing record (hunt code or row number)
        errors: One human-readable message per failing field
    """

    def __init__(self, record: str, errors: Iterable[str]) -> None:
        self.record = record
        self.errors = tuple(errors)
        super().__init__(f"Record {record} has the following errors: {'; '.join(self.errors)}")


# =============================================================================
# Infrastructure and orchestration errors
# =============================================================================


class InfrastructureError(Exception):
    """A store or the execution engine failed."""


class EntityNotFoundError(InfrastructureError):
    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class DefinitionRejectedError(InfrastructureError):
    def __init__(self, reasons: Iterable[str]) -> None:
        self.reasons = tuple(reasons)
        super().__init__(f"Task-chain definition is invalid: {'; '.join(self.reasons)}")


class MissingDefinitionError(InfrastructureError):
    def __init__(self, instance_id: str) -> None:
        self.instance_id = instance_id
        super().__init__(f"Workflow instance {instance_id} has no stored definition")


class ExecutionEngineError(InfrastructureError):
    """The execution engine refused or failed an operation."""


class InstanceNotReadyError(Exception):
    def __init__(self, instance_id: str, status: str) -> None:
        self.instance_id = instance_id
        self.status = status
        super().__init__(f"Workflow instance {instance_id} is not ready (status={status})")


class TriggerError(Exception):
    """Starting an execution failed. The cause is chained."""


class NodeExecutionError(Exception):
    """A node handler failed. The cause is chained."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Error in workflow node handler {node_id}")


class DataSourceNotFoundError(LookupError):
    def __init__(self, node_id: str, domain: str, domain_model: str) -> None:
        self.node_id = node_id
        self.domain = domain
        self.domain_model = domain_model
        super().__init__(f"No {domain}/{domain_model} data source available for node {node_id}")
