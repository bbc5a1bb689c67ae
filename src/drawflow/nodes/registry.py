# src/drawflow/nodes/registry.py
"""Handler table for the local execution engine."""

from __future__ import annotations

from collections.abc import Mapping

from drawflow.contracts.enums import WorkflowNodeType
from drawflow.engine.local import NodeHandler
from drawflow.nodes.draw import run_draw
from drawflow.nodes.export import run_export
from drawflow.nodes.noop import run_noop
from drawflow.nodes.runtime import NodeFunction, NodeServices, wrap_node_handler

# Commit has no behaviour of its own yet and passes results through.
NODE_FUNCTIONS: dict[WorkflowNodeType, NodeFunction] = {
    WorkflowNodeType.DRAW: run_draw,
    WorkflowNodeType.EXPORT: run_export,
    WorkflowNodeType.NOOP: run_noop,
    WorkflowNodeType.COMMIT: run_noop,
}


def build_node_handlers(services: NodeServices, resources: Mapping[WorkflowNodeType, str]) -> dict[str, NodeHandler]:
    """Map each resource reference to the wrapped handler of its node type.

    Raises:
        ValueError: If two node types share one resource reference
    """
    handlers: dict[str, NodeHandler] = {}
    owners: dict[str, WorkflowNodeType] = {}
    for node_type, ref in resources.items():
        if ref in owners:
            raise ValueError(f"Resource {ref} is assigned to both {owners[ref]} and {node_type}")
        owners[ref] = node_type
        handlers[ref] = wrap_node_handler(NODE_FUNCTIONS[node_type], services)
    return handlers
