# src/drawflow/contracts/ports.py
"""Protocols for the external systems the core depends on.

The compiler, orchestrator and node handlers receive these as constructor
arguments. Implementations live in drawflow.core (SQL entity store, blob
stores) and drawflow.engine.local (in-process execution engine).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from drawflow.contracts.draw import DrawConfig, DrawSort
from drawflow.contracts.enums import ExecutionStatus, ResourceStatus, WorkflowInstanceStatus
from drawflow.contracts.workflow import (
    DrawDocument,
    WorkflowEdgeRecord,
    WorkflowInstance,
    WorkflowJob,
    WorkflowJobLog,
    WorkflowNodeRecord,
    WorkflowNodeResult,
)


@runtime_checkable
class EntityStore(Protocol):
    """Persistence for workflow entities, documents and draw configuration."""

    def get_instance(self, instance_id: str) -> WorkflowInstance: ...

    def create_instance(self, instance: WorkflowInstance) -> WorkflowInstance: ...

    def update_instance(
        self,
        instance_id: str,
        *,
        status: WorkflowInstanceStatus | None = None,
        definition_key: str | None = None,
        execution_handle: str | None = None,
    ) -> WorkflowInstance: ...

    def get_job(self, job_id: str) -> WorkflowJob: ...

    def create_job(self, job: WorkflowJob) -> WorkflowJob: ...

    def update_job(
        self,
        job_id: str,
        *,
        execution_handle: str | None = None,
        pre_execution_failure: bool | None = None,
    ) -> WorkflowJob: ...

    def append_job_log(self, log: WorkflowJobLog) -> None: ...

    def list_job_logs(self, job_id: str) -> list[WorkflowJobLog]: ...

    def add_node(self, node: WorkflowNodeRecord) -> None: ...

    def add_edge(self, edge: WorkflowEdgeRecord) -> None: ...

    def list_nodes(self, instance_id: str) -> list[WorkflowNodeRecord]: ...

    def list_edges(self, instance_id: str) -> list[WorkflowEdgeRecord]: ...

    def create_document(self, document: DrawDocument) -> DrawDocument: ...

    def get_document(self, document_id: str) -> DrawDocument: ...

    def list_documents_for_nodes(self, node_ids: Sequence[str]) -> list[DrawDocument]: ...

    def create_node_result(self, result: WorkflowNodeResult) -> None: ...

    def list_node_results(self, job_id: str) -> list[WorkflowNodeResult]: ...

    def put_draw_config(self, node_id: str, config: DrawConfig) -> None: ...

    def get_draw_config_for_node(self, node_id: str) -> DrawConfig | None: ...

    def put_draw_sort(self, sort: DrawSort) -> None: ...

    def get_draw_sort(self, sort_id: str) -> DrawSort | None: ...


@runtime_checkable
class BlobStore(Protocol):
    """Key-addressed object storage for definitions, documents and exports."""

    def write(self, key: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        """Store content under key and return its URI."""
        ...

    def read(self, key: str) -> bytes:
        """Return stored content.

        Raises:
            KeyError: If nothing is stored under key
        """
        ...

    def read_rows(self, key: str) -> list[dict[str, str]]:
        """Parse stored CSV content into header-keyed rows."""
        ...

    def exists(self, key: str) -> bool: ...

    def uri_for(self, key: str) -> str: ...

    def key_from_uri(self, uri: str) -> str: ...


@runtime_checkable
class ExecutionEngine(Protocol):
    """A managed service that runs task-chain definitions."""

    def validate_definition(self, definition: dict[str, Any]) -> list[str]:
        """Return validation problems, empty when the definition is acceptable."""
        ...

    def create_resource(self, name: str, definition: dict[str, Any]) -> str:
        """Create an execution resource and return its handle."""
        ...

    def update_resource(self, handle: str, definition: dict[str, Any]) -> None: ...

    def describe_resource(self, handle: str) -> ResourceStatus: ...

    def start_execution(self, handle: str, input_data: dict[str, Any]) -> str:
        """Start an execution and return its handle."""
        ...

    def describe_execution(self, execution_handle: str) -> ExecutionStatus: ...
