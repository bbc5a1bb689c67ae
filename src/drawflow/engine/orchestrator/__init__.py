"""Build orchestrator package.

Public API:
- BuildOrchestrator: runs the compile, register, await-ready and trigger stages
- BuildContext: ids of the instance (and optional job) being built
- BuildStage, CompileResult, BuildResult

Module structure:
- core.py: BuildOrchestrator and stage failure handling
- types.py: context, stage and result types
"""

from drawflow.engine.orchestrator.core import BuildOrchestrator, definition_key
from drawflow.engine.orchestrator.types import BuildContext, BuildResult, BuildStage, CompileResult

__all__ = [
    "BuildContext",
    "BuildOrchestrator",
    "BuildResult",
    "BuildStage",
    "CompileResult",
    "definition_key",
]
