# src/drawflow/nodes/runtime.py
"""Shared runtime for node handlers.

A node function receives the parsed NodePayload and returns the NodeData it
produced. wrap_node_handler() adapts it to the execution engine's
dict-in/dict-out handler shape and takes care of the bookkeeping every node
needs: job logs for loggable errors, persisted node results and the payload
handed to the next task.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

import structlog

from drawflow.contracts.enums import WorkflowDomain, WorkflowLogLevel, WorkflowMimeDataType
from drawflow.contracts.errors import DataSourceNotFoundError, LoggableWorkflowError, NodeExecutionError
from drawflow.contracts.ports import BlobStore, EntityStore
from drawflow.contracts.workflow import (
    DrawDocument,
    NodeData,
    NodeMime,
    NodePayload,
    WorkflowJobLog,
    WorkflowNodeResult,
)
from drawflow.core.config import DrawSettings
from drawflow.core.logging import get_logger
from drawflow.core.store._helpers import generate_id

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class NodeServices:
    """Collaborators available to every node function."""

    entity_store: EntityStore
    blob_store: BlobStore
    draw_settings: DrawSettings = field(default_factory=DrawSettings)


NodeFunction = Callable[[NodePayload, NodeServices, structlog.stdlib.BoundLogger], list[NodeData]]


def wrap_node_handler(fn: NodeFunction, services: NodeServices) -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Adapt a node function to the execution engine's handler shape.

    The returned handler raises NodeExecutionError, with the original error
    as its cause, when the node function fails. Loggable errors are also
    appended to the job log against the failing node.
    """

    def handler(event: dict[str, Any]) -> dict[str, Any]:
        payload = NodePayload.from_dict(event)
        ctx = payload.context
        log = logger.bind(workflow_job_id=ctx.workflow_job_id, node_id=ctx.node_id)
        log.info("node_started", previous_node_id=ctx.previous_node_id)

        try:
            results = list(fn(payload, services, log))
        except Exception as exc:
            log.error("node_failed", error=str(exc), error_type=type(exc).__name__)
            if isinstance(exc, LoggableWorkflowError):
                services.entity_store.append_job_log(
                    WorkflowJobLog(
                        id=generate_id(),
                        workflow_job_id=ctx.workflow_job_id,
                        level=WorkflowLogLevel.ERROR,
                        message_key=exc.message_key,
                        message_params=exc.message_params,
                        workflow_node_id=ctx.node_id,
                    )
                )
            raise NodeExecutionError(ctx.node_id) from exc

        services.entity_store.create_node_result(
            WorkflowNodeResult(
                id=generate_id(),
                workflow_job_id=ctx.workflow_job_id,
                node_id=ctx.node_id,
                results=tuple(results),
            )
        )
        log.info("node_completed", results=len(results))

        next_payload = replace(
            payload,
            context=replace(ctx, previous_node_id=ctx.node_id),
            node_result_data={**payload.node_result_data, ctx.node_id: results},
        )
        return next_payload.to_dict()

    return handler


def _find(data: list[NodeData] | None, domain: WorkflowDomain, domain_model: str) -> NodeData | None:
    for entry in data or ():
        if entry.mime.domain == domain and entry.mime.domain_model == domain_model:
            return entry
    return None


def find_data_source(payload: NodePayload, domain: WorkflowDomain, domain_model: str) -> NodeData:
    """Locate an input for the current node.

    Data supplied to this node by a data node wins over results of the
    previous node. Results of earlier nodes are not considered.

    Raises:
        DataSourceNotFoundError: If neither place has a match
    """
    ctx = payload.context
    found = _find(payload.node_override_data.get(ctx.node_id), domain, domain_model)
    if found is None and ctx.previous_node_id is not None:
        found = _find(payload.node_result_data.get(ctx.previous_node_id), domain, domain_model)
    if found is None:
        raise DataSourceNotFoundError(ctx.node_id, str(domain), domain_model)
    return found


def document_node_data(blob_store: BlobStore, document: DrawDocument) -> NodeData:
    """NodeData pointing at a stored DRAW document."""
    return NodeData(
        uri=blob_store.uri_for(document.blob_key),
        mime=NodeMime(
            type=WorkflowMimeDataType(document.content_type),
            domain=WorkflowDomain.DRAW,
            domain_model=document.document_type.value,
        ),
    )
