"""Node handlers executed by the task chain: draw, export, noop and commit."""

from drawflow.nodes.registry import NODE_FUNCTIONS, build_node_handlers
from drawflow.nodes.runtime import NodeServices, document_node_data, find_data_source, wrap_node_handler

__all__ = [
    "NODE_FUNCTIONS",
    "NodeServices",
    "build_node_handlers",
    "document_node_data",
    "find_data_source",
    "wrap_node_handler",
]
