# src/drawflow/contracts/enums.py
"""Status codes, kinds and keys used across subsystem boundaries.

Every enum here is a closed set. Values are persisted verbatim in the
entity store and in job logs, so renaming a value is a data migration.
"""

from enum import StrEnum


class WorkflowInstanceStatus(StrEnum):
    """Build status of a workflow instance.

    Stored in the database (workflow_instances.status).
    """

    BUILD_NEEDED = "BUILD_NEEDED"
    BUILD_STARTED = "BUILD_STARTED"
    BUILD_FAILED = "BUILD_FAILED"
    READY = "READY"


class WorkflowNodeType(StrEnum):
    """Functional node types. Each compiles to exactly one task."""

    DRAW = "WorkflowDrawNode"
    EXPORT = "WorkflowExportNode"
    NOOP = "WorkflowNoopNode"
    COMMIT = "WorkflowCommitNode"


class WorkflowDataNodeType(StrEnum):
    """Data-source node types. They never compile to tasks.

    A data node feeding a functional node becomes an input override
    of that node. The null data node contributes nothing.
    """

    DRAW_APPLICANT_DATA = "WorkflowDrawApplicantDataNode"
    DRAW_DATA = "WorkflowDrawDataNode"
    NULL_DATA = "WorkflowNullDataNode"


class WorkflowMimeDataType(StrEnum):
    """Content types accepted for node input and output data."""

    ANY = "*/*"
    CSV = "text/csv"
    JSON = "application/json"
    ZIP = "application/zip"


class WorkflowDomain(StrEnum):
    """Business domain that a piece of node data belongs to."""

    DRAW = "DRAW"


class DrawDocumentType(StrEnum):
    """Kind of document stored for the draw domain.

    Also used as the domain model of node data in the DRAW domain.
    """

    APPLICANTS = "APPLICANTS"
    HUNT_CODES = "HUNT_CODES"
    DRAW_METRICS = "DRAW_METRICS"
    RESULT_EXPORT = "DrawResultExport"


class ProcessingStatus(StrEnum):
    """Processing status of an uploaded or generated document."""

    PENDING = "PENDING"
    VALIDATION_STARTED = "VALIDATION_STARTED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    VALIDATION_FINISHED = "VALIDATION_FINISHED"


class ApplicantResidency(StrEnum):
    RESIDENT = "RESIDENT"
    NON_RESIDENT = "NON_RESIDENT"


class ApplicantDrawOutcome(StrEnum):
    AWARDED = "AWARDED"
    NOT_AWARDED = "NOT_AWARDED"


class DrawSortDirection(StrEnum):
    ASC = "ASC"
    DESC = "DESC"


class DrawSortField(StrEnum):
    """Applicant fields a draw sort rule may order by."""

    APPLICATION_NUMBER = "application_number"
    AGE = "age"
    RESIDENCY = "residency"
    POINT_BALANCE = "point_balance"


class QuotaRule(StrEnum):
    """Quota rules a draw configuration may switch on."""

    FLOW_QUOTA = "FLOW_QUOTA"
    NON_RESIDENT_CAP_ENFORCEMENT = "NON_RESIDENT_CAP_ENFORCEMENT"
    WP_RES_QUOTA = "WP_RES_QUOTA"


class WorkflowLogLevel(StrEnum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class WorkflowMessageKey(StrEnum):
    """Message keys written to job logs.

    A log entry carries a key plus structured parameters, never free text,
    so that clients can render it in any language.
    """

    CYCLE_DETECTED = "CycleDetected"
    DATA_NODE_HAS_NO_DOCUMENT = "DataNodeHasNoDocument"
    EDGE_HAS_INVALID_SOURCE = "EdgeHasInvalidSource"
    EDGE_HAS_INVALID_TARGET = "EdgeHasInvalidTarget"
    INVALID_MIME_TYPE = "InvalidMimeType"
    INVALID_NODE_TYPE = "InvalidNodeType"
    MULTIPLE_END_NODES_FOUND = "MultipleEndNodesFound"
    MULTIPLE_START_NODES_FOUND = "MultipleStartNodesFound"
    NO_RESOURCE_FOUND = "NoResourceFound"
    NO_START_NODE_FOUND = "NoStartNodeFound"
    PARALLEL_NODES_NOT_SUPPORTED = "ParallelNodesNotSupported"
    READY_TIMEOUT = "ReadyTimeout"
    UNKNOWN_ERROR = "UnknownError"


class ResourceStatus(StrEnum):
    """Readiness of a managed execution resource."""

    CREATING = "CREATING"
    ACTIVE = "ACTIVE"
    DELETING = "DELETING"


class ExecutionStatus(StrEnum):
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class EdgeKind(StrEnum):
    """How an edge contributes to the compiled graph.

    FLOW edges leave a functional node and define execution order.
    OVERRIDE edges leave a data node and feed an input override.
    """

    FLOW = "flow"
    OVERRIDE = "override"
