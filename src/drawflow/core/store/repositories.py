"""Row loaders for the entity store.

Handles the seam between SQLAlchemy rows (strings, JSON text) and domain
records (strict enum types). The database is our own data: a value that
fails enum conversion is a bug and crashes.
"""

import json
from typing import Any

from sqlalchemy.engine import Row as SARow

from drawflow.contracts.draw import DrawConfig, DrawSort, DrawSortRule
from drawflow.contracts.enums import (
    DrawDocumentType,
    ProcessingStatus,
    QuotaRule,
    WorkflowInstanceStatus,
    WorkflowLogLevel,
    WorkflowMessageKey,
)
from drawflow.contracts.workflow import (
    DrawDocument,
    NodeData,
    WorkflowEdgeRecord,
    WorkflowInstance,
    WorkflowJob,
    WorkflowJobLog,
    WorkflowNodeRecord,
    WorkflowNodeResult,
)


class InstanceRepository:
    def load(self, row: SARow[Any]) -> WorkflowInstance:
        return WorkflowInstance(
            id=row.instance_id,
            organization_id=row.organization_id,
            workflow_id=row.workflow_id,
            status=WorkflowInstanceStatus(row.status),
            definition_key=row.definition_key,
            execution_handle=row.execution_handle,
        )


class JobRepository:
    def load(self, row: SARow[Any]) -> WorkflowJob:
        return WorkflowJob(
            id=row.job_id,
            organization_id=row.organization_id,
            workflow_instance_id=row.instance_id,
            execution_handle=row.execution_handle,
            pre_execution_failure=bool(row.pre_execution_failure),
        )


class JobLogRepository:
    def load(self, row: SARow[Any]) -> WorkflowJobLog:
        params = json.loads(row.message_params_json)
        return WorkflowJobLog(
            id=row.log_id,
            workflow_job_id=row.job_id,
            level=WorkflowLogLevel(row.level),
            message_key=WorkflowMessageKey(row.message_key),
            message_params=tuple((p["key"], p["value"]) for p in params),
            workflow_node_id=row.node_id,
        )

    @staticmethod
    def dump_params(params: tuple[tuple[str, str], ...]) -> str:
        return json.dumps([{"key": k, "value": v} for k, v in params])


class NodeRepository:
    def load(self, row: SARow[Any]) -> WorkflowNodeRecord:
        return WorkflowNodeRecord(
            id=row.node_id,
            workflow_instance_id=row.instance_id,
            node_type=row.node_type,
            name=row.name,
        )


class EdgeRepository:
    def load(self, row: SARow[Any]) -> WorkflowEdgeRecord:
        return WorkflowEdgeRecord(
            id=row.edge_id,
            workflow_instance_id=row.instance_id,
            source_node_id=row.source_node_id,
            target_node_id=row.target_node_id,
        )


class DocumentRepository:
    def load(self, row: SARow[Any]) -> DrawDocument:
        return DrawDocument(
            id=row.document_id,
            organization_id=row.organization_id,
            name=row.name,
            filename=row.filename,
            content_type=row.content_type,
            blob_key=row.blob_key,
            document_type=DrawDocumentType(row.document_type),
            processing_status=ProcessingStatus(row.processing_status),
            workflow_node_id=row.node_id,
        )


class NodeResultRepository:
    def load(self, row: SARow[Any]) -> WorkflowNodeResult:
        return WorkflowNodeResult(
            id=row.result_id,
            workflow_job_id=row.job_id,
            node_id=row.node_id,
            results=tuple(NodeData.from_dict(d) for d in json.loads(row.results_json)),
        )

    @staticmethod
    def dump_results(results: tuple[NodeData, ...]) -> str:
        return json.dumps([d.to_dict() for d in results])


class DrawSortRepository:
    def load(self, row: SARow[Any]) -> DrawSort:
        return DrawSort(
            id=row.sort_id,
            name=row.name,
            rules=tuple(DrawSortRule.model_validate(r) for r in json.loads(row.rules_json)),
        )

    @staticmethod
    def dump_rules(sort: DrawSort) -> str:
        return json.dumps([r.model_dump(mode="json") for r in sort.rules])


class DrawConfigRepository:
    def load(self, row: SARow[Any]) -> DrawConfig:
        return DrawConfig(
            id=row.config_id,
            name=row.name,
            use_points=bool(row.use_points),
            sort_id=row.sort_id,
            quota_rule_flags=tuple(QuotaRule(f) for f in json.loads(row.quota_rule_flags_json)),
            applicants=tuple(json.loads(row.applicants_json)),
        )
