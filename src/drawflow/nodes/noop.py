# src/drawflow/nodes/noop.py
"""Pass-through node: forwards the previous node's results unchanged."""

from __future__ import annotations

import structlog

from drawflow.contracts.workflow import NodeData, NodePayload
from drawflow.nodes.runtime import NodeServices


def run_noop(payload: NodePayload, services: NodeServices, log: structlog.stdlib.BoundLogger) -> list[NodeData]:
    previous = payload.context.previous_node_id
    if previous is None:
        return []
    return list(payload.node_result_data.get(previous, []))
