# src/drawflow/core/store/schema.py
"""SQLAlchemy table definitions for the entity store.

Uses SQLAlchemy Core (not ORM) for explicit control over queries and
compatibility with multiple database backends.

Tables whose listing order matters carry an integer ``seq`` primary key;
the string id is unique but insertion order is read from ``seq``.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

# === Workflow instances and jobs ===

workflow_instances_table = Table(
    "workflow_instances",
    metadata,
    Column("instance_id", String(64), primary_key=True),
    Column("organization_id", String(64), nullable=False),
    Column("workflow_id", String(64), nullable=False),
    Column("status", String(32), nullable=False),
    Column("definition_key", String(512)),
    Column("execution_handle", String(512)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

workflow_jobs_table = Table(
    "workflow_jobs",
    metadata,
    Column("job_id", String(64), primary_key=True),
    Column("organization_id", String(64), nullable=False),
    Column("instance_id", String(64), ForeignKey("workflow_instances.instance_id"), nullable=False),
    Column("execution_handle", String(512)),
    Column("pre_execution_failure", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

workflow_job_logs_table = Table(
    "workflow_job_logs",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("log_id", String(64), nullable=False, unique=True),
    Column("job_id", String(64), ForeignKey("workflow_jobs.job_id"), nullable=False),
    Column("node_id", String(64)),
    Column("level", String(16), nullable=False),
    Column("message_key", String(64), nullable=False),
    Column("message_params_json", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

Index("ix_workflow_job_logs_job", workflow_job_logs_table.c.job_id)

# === Graph ===

# Edges are stored without foreign keys: an edge may reference a node that
# no longer exists, which the compiler reports.
workflow_nodes_table = Table(
    "workflow_nodes",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("node_id", String(64), nullable=False, unique=True),
    Column("instance_id", String(64), nullable=False),
    Column("node_type", String(64), nullable=False),
    Column("name", String(256)),
)

Index("ix_workflow_nodes_instance", workflow_nodes_table.c.instance_id)

workflow_edges_table = Table(
    "workflow_edges",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("edge_id", String(64), nullable=False, unique=True),
    Column("instance_id", String(64), nullable=False),
    Column("source_node_id", String(64), nullable=False),
    Column("target_node_id", String(64), nullable=False),
)

Index("ix_workflow_edges_instance", workflow_edges_table.c.instance_id)

# === Documents and node results ===

draw_documents_table = Table(
    "draw_documents",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("document_id", String(64), nullable=False, unique=True),
    Column("organization_id", String(64), nullable=False),
    Column("name", String(256), nullable=False),
    Column("filename", String(256), nullable=False),
    Column("content_type", String(128), nullable=False),
    Column("blob_key", String(512), nullable=False),
    Column("document_type", String(32), nullable=False),
    Column("processing_status", String(32), nullable=False),
    Column("node_id", String(64)),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

Index("ix_draw_documents_node", draw_documents_table.c.node_id)

workflow_node_results_table = Table(
    "workflow_node_results",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("result_id", String(64), nullable=False, unique=True),
    Column("job_id", String(64), ForeignKey("workflow_jobs.job_id"), nullable=False),
    Column("node_id", String(64), nullable=False),
    Column("results_json", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

# === Draw configuration ===

draw_sorts_table = Table(
    "draw_sorts",
    metadata,
    Column("sort_id", String(64), primary_key=True),
    Column("name", String(256), nullable=False),
    Column("rules_json", Text, nullable=False),
)

draw_configs_table = Table(
    "draw_configs",
    metadata,
    Column("config_id", String(64), primary_key=True),
    Column("node_id", String(64), nullable=False, unique=True),
    Column("name", String(256), nullable=False),
    Column("use_points", Boolean, nullable=False),
    Column("sort_id", String(64)),
    Column("quota_rule_flags_json", Text, nullable=False),
    Column("applicants_json", Text, nullable=False),
)
