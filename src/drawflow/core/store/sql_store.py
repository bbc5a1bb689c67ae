# src/drawflow/core/store/sql_store.py
"""SQL implementation of the EntityStore port."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from sqlalchemy import select

from drawflow.contracts.draw import DrawConfig, DrawSort
from drawflow.contracts.enums import WorkflowInstanceStatus
from drawflow.contracts.errors import EntityNotFoundError
from drawflow.contracts.workflow import (
    DrawDocument,
    WorkflowEdgeRecord,
    WorkflowInstance,
    WorkflowJob,
    WorkflowJobLog,
    WorkflowNodeRecord,
    WorkflowNodeResult,
)
from drawflow.core.store._helpers import now
from drawflow.core.store.database import DatabaseOps, EntityDatabase
from drawflow.core.store.repositories import (
    DocumentRepository,
    DrawConfigRepository,
    DrawSortRepository,
    EdgeRepository,
    InstanceRepository,
    JobLogRepository,
    JobRepository,
    NodeRepository,
    NodeResultRepository,
)
from drawflow.core.store.schema import (
    draw_configs_table,
    draw_documents_table,
    draw_sorts_table,
    workflow_edges_table,
    workflow_instances_table,
    workflow_job_logs_table,
    workflow_jobs_table,
    workflow_node_results_table,
    workflow_nodes_table,
)


class SqlEntityStore:
    """Entity store over SQLAlchemy Core.

    Example:
        store = SqlEntityStore(EntityDatabase.in_memory())
        store.create_instance(WorkflowInstance(id="i1", organization_id="o1", workflow_id="w1"))
    """

    def __init__(self, db: EntityDatabase) -> None:
        self._db = db
        self._ops = DatabaseOps(db)
        self._instances = InstanceRepository()
        self._jobs = JobRepository()
        self._logs = JobLogRepository()
        self._nodes = NodeRepository()
        self._edges = EdgeRepository()
        self._documents = DocumentRepository()
        self._results = NodeResultRepository()
        self._sorts = DrawSortRepository()
        self._configs = DrawConfigRepository()

    # === Instances ===

    def get_instance(self, instance_id: str) -> WorkflowInstance:
        row = self._ops.execute_fetchone(
            select(workflow_instances_table).where(workflow_instances_table.c.instance_id == instance_id)
        )
        if row is None:
            raise EntityNotFoundError("WorkflowInstance", instance_id)
        return self._instances.load(row)

    def create_instance(self, instance: WorkflowInstance) -> WorkflowInstance:
        timestamp = now()
        self._ops.execute_insert(
            workflow_instances_table.insert().values(
                instance_id=instance.id,
                organization_id=instance.organization_id,
                workflow_id=instance.workflow_id,
                status=instance.status.value,
                definition_key=instance.definition_key,
                execution_handle=instance.execution_handle,
                created_at=timestamp,
                updated_at=timestamp,
            )
        )
        return instance

    def update_instance(
        self,
        instance_id: str,
        *,
        status: WorkflowInstanceStatus | None = None,
        definition_key: str | None = None,
        execution_handle: str | None = None,
    ) -> WorkflowInstance:
        values: dict[str, Any] = {"updated_at": now()}
        if status is not None:
            values["status"] = status.value
        if definition_key is not None:
            values["definition_key"] = definition_key
        if execution_handle is not None:
            values["execution_handle"] = execution_handle
        affected = self._ops.execute_update(
            workflow_instances_table.update().where(workflow_instances_table.c.instance_id == instance_id).values(**values)
        )
        if affected == 0:
            raise EntityNotFoundError("WorkflowInstance", instance_id)
        return self.get_instance(instance_id)

    # === Jobs ===

    def get_job(self, job_id: str) -> WorkflowJob:
        row = self._ops.execute_fetchone(select(workflow_jobs_table).where(workflow_jobs_table.c.job_id == job_id))
        if row is None:
            raise EntityNotFoundError("WorkflowJob", job_id)
        return self._jobs.load(row)

    def create_job(self, job: WorkflowJob) -> WorkflowJob:
        self._ops.execute_insert(
            workflow_jobs_table.insert().values(
                job_id=job.id,
                organization_id=job.organization_id,
                instance_id=job.workflow_instance_id,
                execution_handle=job.execution_handle,
                pre_execution_failure=job.pre_execution_failure,
                created_at=now(),
            )
        )
        return job

    def update_job(
        self,
        job_id: str,
        *,
        execution_handle: str | None = None,
        pre_execution_failure: bool | None = None,
    ) -> WorkflowJob:
        values: dict[str, Any] = {}
        if execution_handle is not None:
            values["execution_handle"] = execution_handle
        if pre_execution_failure is not None:
            values["pre_execution_failure"] = pre_execution_failure
        if values:
            affected = self._ops.execute_update(
                workflow_jobs_table.update().where(workflow_jobs_table.c.job_id == job_id).values(**values)
            )
            if affected == 0:
                raise EntityNotFoundError("WorkflowJob", job_id)
        return self.get_job(job_id)

    def append_job_log(self, log: WorkflowJobLog) -> None:
        self._ops.execute_insert(
            workflow_job_logs_table.insert().values(
                log_id=log.id,
                job_id=log.workflow_job_id,
                node_id=log.workflow_node_id,
                level=log.level.value,
                message_key=log.message_key.value,
                message_params_json=JobLogRepository.dump_params(log.message_params),
                created_at=now(),
            )
        )

    def list_job_logs(self, job_id: str) -> list[WorkflowJobLog]:
        rows = self._ops.execute_fetchall(
            select(workflow_job_logs_table)
            .where(workflow_job_logs_table.c.job_id == job_id)
            .order_by(workflow_job_logs_table.c.seq)
        )
        return [self._logs.load(row) for row in rows]

    # === Graph ===

    def add_node(self, node: WorkflowNodeRecord) -> None:
        self._ops.execute_insert(
            workflow_nodes_table.insert().values(
                node_id=node.id,
                instance_id=node.workflow_instance_id,
                node_type=node.node_type,
                name=node.name,
            )
        )

    def add_edge(self, edge: WorkflowEdgeRecord) -> None:
        self._ops.execute_insert(
            workflow_edges_table.insert().values(
                edge_id=edge.id,
                instance_id=edge.workflow_instance_id,
                source_node_id=edge.source_node_id,
                target_node_id=edge.target_node_id,
            )
        )

    def list_nodes(self, instance_id: str) -> list[WorkflowNodeRecord]:
        rows = self._ops.execute_fetchall(
            select(workflow_nodes_table)
            .where(workflow_nodes_table.c.instance_id == instance_id)
            .order_by(workflow_nodes_table.c.seq)
        )
        return [self._nodes.load(row) for row in rows]

    def list_edges(self, instance_id: str) -> list[WorkflowEdgeRecord]:
        rows = self._ops.execute_fetchall(
            select(workflow_edges_table)
            .where(workflow_edges_table.c.instance_id == instance_id)
            .order_by(workflow_edges_table.c.seq)
        )
        return [self._edges.load(row) for row in rows]

    # === Documents ===

    def create_document(self, document: DrawDocument) -> DrawDocument:
        self._ops.execute_insert(
            draw_documents_table.insert().values(
                document_id=document.id,
                organization_id=document.organization_id,
                name=document.name,
                filename=document.filename,
                content_type=document.content_type,
                blob_key=document.blob_key,
                document_type=document.document_type.value,
                processing_status=document.processing_status.value,
                node_id=document.workflow_node_id,
                created_at=now(),
            )
        )
        return document

    def get_document(self, document_id: str) -> DrawDocument:
        row = self._ops.execute_fetchone(select(draw_documents_table).where(draw_documents_table.c.document_id == document_id))
        if row is None:
            raise EntityNotFoundError("DrawDocument", document_id)
        return self._documents.load(row)

    def list_documents_for_nodes(self, node_ids: Sequence[str]) -> list[DrawDocument]:
        if not node_ids:
            return []
        rows = self._ops.execute_fetchall(
            select(draw_documents_table)
            .where(draw_documents_table.c.node_id.in_(list(node_ids)))
            .order_by(draw_documents_table.c.seq)
        )
        return [self._documents.load(row) for row in rows]

    # === Node results ===

    def create_node_result(self, result: WorkflowNodeResult) -> None:
        self._ops.execute_insert(
            workflow_node_results_table.insert().values(
                result_id=result.id,
                job_id=result.workflow_job_id,
                node_id=result.node_id,
                results_json=NodeResultRepository.dump_results(result.results),
                created_at=now(),
            )
        )

    def list_node_results(self, job_id: str) -> list[WorkflowNodeResult]:
        rows = self._ops.execute_fetchall(
            select(workflow_node_results_table)
            .where(workflow_node_results_table.c.job_id == job_id)
            .order_by(workflow_node_results_table.c.seq)
        )
        return [self._results.load(row) for row in rows]

    # === Draw configuration ===

    def put_draw_config(self, node_id: str, config: DrawConfig) -> None:
        values = {
            "config_id": config.id,
            "name": config.name,
            "use_points": config.use_points,
            "sort_id": config.sort_id,
            "quota_rule_flags_json": json.dumps([f.value for f in config.quota_rule_flags]),
            "applicants_json": json.dumps(list(config.applicants)),
        }
        with self._db.connection() as conn:
            existing = conn.execute(
                select(draw_configs_table.c.config_id).where(draw_configs_table.c.node_id == node_id)
            ).fetchone()
            if existing is None:
                conn.execute(draw_configs_table.insert().values(node_id=node_id, **values))
            else:
                conn.execute(draw_configs_table.update().where(draw_configs_table.c.node_id == node_id).values(**values))

    def get_draw_config_for_node(self, node_id: str) -> DrawConfig | None:
        row = self._ops.execute_fetchone(select(draw_configs_table).where(draw_configs_table.c.node_id == node_id))
        return self._configs.load(row) if row is not None else None

    def put_draw_sort(self, sort: DrawSort) -> None:
        with self._db.connection() as conn:
            existing = conn.execute(
                select(draw_sorts_table.c.sort_id).where(draw_sorts_table.c.sort_id == sort.id)
            ).fetchone()
            rules_json = DrawSortRepository.dump_rules(sort)
            if existing is None:
                conn.execute(draw_sorts_table.insert().values(sort_id=sort.id, name=sort.name, rules_json=rules_json))
            else:
                conn.execute(
                    draw_sorts_table.update().where(draw_sorts_table.c.sort_id == sort.id).values(name=sort.name, rules_json=rules_json)
                )

    def get_draw_sort(self, sort_id: str) -> DrawSort | None:
        row = self._ops.execute_fetchone(select(draw_sorts_table).where(draw_sorts_table.c.sort_id == sort_id))
        return self._sorts.load(row) if row is not None else None
