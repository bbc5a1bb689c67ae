# src/drawflow/core/graph/__init__.py
"""Workflow graph model, endpoint validation and task-chain compiler."""

from drawflow.core.graph.compiler import CompilationResult, ResourceRegistry, TaskChainCompiler
from drawflow.core.graph.graph import WorkflowGraph, parse_node_type
from drawflow.core.graph.models import GraphNode, GraphValidationWarning, NodeInfo
from drawflow.core.graph.validation import find_start_node

__all__ = [
    "CompilationResult",
    "GraphNode",
    "GraphValidationWarning",
    "NodeInfo",
    "ResourceRegistry",
    "TaskChainCompiler",
    "WorkflowGraph",
    "find_start_node",
    "parse_node_type",
]
