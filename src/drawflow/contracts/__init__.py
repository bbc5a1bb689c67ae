# src/drawflow/contracts/__init__.py
"""Shared contracts: enums, records, errors and ports.

Leaf package. Nothing here imports from drawflow.core, drawflow.engine,
drawflow.draw or drawflow.nodes.
"""

from drawflow.contracts.draw import (
    DRAW_RUN_NUM_CHOICES,
    Applicant,
    BucketResult,
    DrawBucket,
    DrawConfig,
    DrawResult,
    DrawSort,
    DrawSortRule,
    HuntCode,
    NonResidentPool,
    QuotaDelta,
    ResidentPool,
    WpResPool,
)
from drawflow.contracts.enums import (
    ApplicantDrawOutcome,
    ApplicantResidency,
    DrawDocumentType,
    DrawSortDirection,
    DrawSortField,
    EdgeKind,
    ExecutionStatus,
    ProcessingStatus,
    QuotaRule,
    ResourceStatus,
    WorkflowDataNodeType,
    WorkflowDomain,
    WorkflowInstanceStatus,
    WorkflowLogLevel,
    WorkflowMessageKey,
    WorkflowMimeDataType,
    WorkflowNodeType,
)
from drawflow.contracts.ports import BlobStore, EntityStore, ExecutionEngine
from drawflow.contracts.workflow import (
    DrawDocument,
    NodeContext,
    NodeData,
    NodeMime,
    NodePayload,
    WorkflowEdgeRecord,
    WorkflowInstance,
    WorkflowJob,
    WorkflowJobLog,
    WorkflowNodeRecord,
    WorkflowNodeResult,
)

__all__ = [
    "DRAW_RUN_NUM_CHOICES",
    "Applicant",
    "ApplicantDrawOutcome",
    "ApplicantResidency",
    "BlobStore",
    "BucketResult",
    "DrawBucket",
    "DrawConfig",
    "DrawDocument",
    "DrawDocumentType",
    "DrawResult",
    "DrawSort",
    "DrawSortDirection",
    "DrawSortField",
    "DrawSortRule",
    "EdgeKind",
    "EntityStore",
    "ExecutionEngine",
    "ExecutionStatus",
    "HuntCode",
    "NodeContext",
    "NodeData",
    "NodeMime",
    "NodePayload",
    "NonResidentPool",
    "ProcessingStatus",
    "QuotaDelta",
    "QuotaRule",
    "ResidentPool",
    "ResourceStatus",
    "WorkflowDataNodeType",
    "WorkflowDomain",
    "WorkflowEdgeRecord",
    "WorkflowInstance",
    "WorkflowInstanceStatus",
    "WorkflowJob",
    "WorkflowJobLog",
    "WorkflowLogLevel",
    "WorkflowMessageKey",
    "WorkflowMimeDataType",
    "WorkflowNodeRecord",
    "WorkflowNodeResult",
    "WorkflowNodeType",
    "WpResPool",
]
