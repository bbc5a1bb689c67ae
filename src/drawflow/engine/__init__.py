"""Execution side: build orchestration, clocks and the in-process execution engine."""

from drawflow.engine.clock import DEFAULT_CLOCK, Clock, MockClock, SystemClock
from drawflow.engine.local import ExecutionRecord, LocalExecutionEngine, NodeHandler
from drawflow.engine.orchestrator import BuildContext, BuildOrchestrator, BuildResult, BuildStage, CompileResult

__all__ = [
    "DEFAULT_CLOCK",
    "BuildContext",
    "BuildOrchestrator",
    "BuildResult",
    "BuildStage",
    "Clock",
    "CompileResult",
    "ExecutionRecord",
    "LocalExecutionEngine",
    "MockClock",
    "NodeHandler",
    "SystemClock",
]
