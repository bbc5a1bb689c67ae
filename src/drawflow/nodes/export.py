# src/drawflow/nodes/export.py
"""Export node: bundles every blob-backed input into one zip document."""

from __future__ import annotations

import io
import zipfile

import structlog

from drawflow.contracts.enums import DrawDocumentType, WorkflowMimeDataType
from drawflow.contracts.workflow import NodeData, NodePayload
from drawflow.core.blob_store import is_blob_uri
from drawflow.draw.export import store_document
from drawflow.nodes.runtime import NodeServices, document_node_data

_EXTENSIONS: dict[WorkflowMimeDataType, str | None] = {
    WorkflowMimeDataType.ANY: None,
    WorkflowMimeDataType.CSV: "csv",
    WorkflowMimeDataType.JSON: "json",
    WorkflowMimeDataType.ZIP: "zip",
}


def archive_member_name(data: NodeData, index: int) -> str:
    """``{domain}_{domain_model}_{index}.{ext}``, lower-cased, no extension for */*."""
    stem = f"{data.mime.domain.lower()}_{data.mime.domain_model.lower()}_{index}"
    extension = _EXTENSIONS[data.mime.type]
    return f"{stem}.{extension}" if extension else stem


def collect_inputs(payload: NodePayload) -> list[NodeData]:
    """All results so far plus data attached to this node, blob-backed only."""
    inputs = [entry for results in payload.node_result_data.values() for entry in results]
    inputs.extend(payload.node_override_data.get(payload.context.node_id, []))
    return [entry for entry in inputs if is_blob_uri(entry.uri)]


def run_export(payload: NodePayload, services: NodeServices, log: structlog.stdlib.BoundLogger) -> list[NodeData]:
    ctx = payload.context
    blobs = services.blob_store
    sources = collect_inputs(payload)
    if not sources:
        log.info("export_skipped_no_inputs")
        return []

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for index, entry in enumerate(sources):
            archive.writestr(archive_member_name(entry, index), blobs.read(blobs.key_from_uri(entry.uri)))

    name = f"{ctx.workflow_job_id}_{ctx.node_id}_draw_results"
    document = store_document(
        services.entity_store,
        blobs,
        organization_id=ctx.organization_id,
        name=name,
        filename=f"{name}.zip",
        content=buffer.getvalue(),
        content_type=WorkflowMimeDataType.ZIP,
        document_type=DrawDocumentType.RESULT_EXPORT,
    )
    log.info("export_archive_written", files=len(sources), document_id=document.id)
    return [document_node_data(blobs, document)]
