# src/drawflow/cli_helpers.py
"""Helpers for the CLI: file loading, workflow import and service wiring."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from drawflow.contracts.draw import DrawConfig, DrawSort
from drawflow.contracts.enums import DrawDocumentType, WorkflowMimeDataType
from drawflow.contracts.workflow import DrawDocument, WorkflowEdgeRecord, WorkflowInstance, WorkflowNodeRecord
from drawflow.core.blob_store import FilesystemBlobStore
from drawflow.core.config import DrawflowSettings
from drawflow.core.graph import ResourceRegistry
from drawflow.core.store import EntityDatabase, SqlEntityStore
from drawflow.core.store._helpers import generate_id
from drawflow.engine.local import LocalExecutionEngine
from drawflow.engine.orchestrator import BuildOrchestrator
from drawflow.nodes import NodeServices, build_node_handlers


def load_structured_file(path: Path) -> Any:
    """Parse a YAML or JSON file. JSON is read by the YAML parser as well."""
    with path.open(encoding="utf-8") as f:
        return yaml.safe_load(f)


def read_csv_rows(path: Path) -> list[dict[str, str]]:
    """Read a CSV file into header-keyed rows, ignoring a leading byte order mark."""
    with path.open(encoding="utf-8-sig", newline="") as f:
        return list(csv.DictReader(f))


# =============================================================================
# Workflow import file
# =============================================================================


class DocumentEntry(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    path: Path
    type: DrawDocumentType
    content_type: WorkflowMimeDataType = WorkflowMimeDataType.CSV
    name: str | None = None


class NodeEntry(BaseModel):
    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(min_length=1)
    type: str = Field(min_length=1)
    name: str | None = None
    document: DocumentEntry | None = None
    draw_config: DrawConfig | None = None


class WorkflowFile(BaseModel):
    """A workflow instance described in YAML, loaded by ``drawflow load``.

    Example:
        organization_id: org-1
        workflow_id: spring-draw
        instance_id: spring-draw-2026
        sorts:
          - {id: by-age, name: By age, rules: [{field: age, direction: ASC}]}
        nodes:
          - {id: applicants, type: WorkflowDrawApplicantDataNode,
             document: {path: applicants.csv, type: APPLICANTS}}
          - {id: hunt-codes, type: WorkflowDrawDataNode,
             document: {path: hunt_codes.csv, type: HUNT_CODES}}
          - {id: draw, type: WorkflowDrawNode,
             draw_config: {id: cfg-1, name: Spring, sort_id: by-age}}
        edges:
          - [applicants, draw]
          - [hunt-codes, draw]
    """

    model_config = {"frozen": True, "extra": "forbid"}

    organization_id: str = Field(min_length=1)
    workflow_id: str = Field(min_length=1)
    instance_id: str = Field(min_length=1)
    sorts: tuple[DrawSort, ...] = ()
    nodes: tuple[NodeEntry, ...] = ()
    edges: tuple[tuple[str, str], ...] = ()


def import_workflow(
    store: SqlEntityStore,
    blobs: FilesystemBlobStore,
    workflow: WorkflowFile,
    base_dir: Path,
) -> WorkflowInstance:
    """Store the instance, its nodes, edges, documents, sorts and draw configs.

    Document paths are resolved relative to base_dir.
    """
    instance = store.create_instance(
        WorkflowInstance(
            id=workflow.instance_id,
            organization_id=workflow.organization_id,
            workflow_id=workflow.workflow_id,
        )
    )
    for sort in workflow.sorts:
        store.put_draw_sort(sort)

    for node in workflow.nodes:
        store.add_node(WorkflowNodeRecord(id=node.id, workflow_instance_id=instance.id, node_type=node.type, name=node.name))
        if node.draw_config is not None:
            store.put_draw_config(node.id, node.draw_config)
        if node.document is not None:
            _import_document(store, blobs, workflow.organization_id, node.id, node.document, base_dir)

    for source_id, target_id in workflow.edges:
        store.add_edge(
            WorkflowEdgeRecord(
                id=generate_id(),
                workflow_instance_id=instance.id,
                source_node_id=source_id,
                target_node_id=target_id,
            )
        )
    return instance


def _import_document(
    store: SqlEntityStore,
    blobs: FilesystemBlobStore,
    organization_id: str,
    node_id: str,
    entry: DocumentEntry,
    base_dir: Path,
) -> DrawDocument:
    path = entry.path if entry.path.is_absolute() else base_dir / entry.path
    document_id = generate_id()
    key = f"{organization_id}/documents/{document_id}/{path.name}"
    blobs.write(key, path.read_bytes(), str(entry.content_type))
    return store.create_document(
        DrawDocument(
            id=document_id,
            organization_id=organization_id,
            name=entry.name or path.stem,
            filename=path.name,
            content_type=str(entry.content_type),
            blob_key=key,
            document_type=entry.type,
            workflow_node_id=node_id,
        )
    )


# =============================================================================
# Service wiring
# =============================================================================


@dataclass
class Services:
    """Stores, engine and orchestrator built from settings."""

    db: EntityDatabase
    store: SqlEntityStore
    blobs: FilesystemBlobStore
    engine: LocalExecutionEngine
    orchestrator: BuildOrchestrator
    registry: ResourceRegistry

    def close(self) -> None:
        self.db.close()


def build_services(settings: DrawflowSettings) -> Services:
    db = EntityDatabase.from_url(settings.database.url, echo=settings.database.echo)
    store = SqlEntityStore(db)
    blobs = FilesystemBlobStore(settings.blob_store.base_path, bucket=settings.blob_store.bucket)
    handlers = build_node_handlers(NodeServices(store, blobs, settings.draw), settings.resources)
    engine = LocalExecutionEngine(handlers)
    registry = ResourceRegistry(settings.resources)
    orchestrator = BuildOrchestrator(store, blobs, engine, registry, settings)
    return Services(db=db, store=store, blobs=blobs, engine=engine, orchestrator=orchestrator, registry=registry)
