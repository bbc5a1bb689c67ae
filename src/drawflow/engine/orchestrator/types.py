# src/drawflow/engine/orchestrator/types.py
"""Build context and result types.

This module is a LEAF MODULE: it must not import from core.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from drawflow.core.graph.models import GraphValidationWarning


class BuildStage(StrEnum):
    """The four build stages, in execution order."""

    COMPILE = "compile"
    REGISTER = "register"
    AWAIT_READY = "await_ready"
    TRIGGER = "trigger"

    @property
    def fails_build(self) -> bool:
        """Whether a failure in this stage marks the instance BUILD_FAILED."""
        return self is not BuildStage.TRIGGER


@dataclass(frozen=True, slots=True)
class BuildContext:
    """Identifies the instance being built and, optionally, the job to trigger."""

    organization_id: str
    workflow_id: str
    workflow_instance_id: str
    workflow_job_id: str | None = None

    def log_fields(self) -> dict[str, str]:
        fields = {
            "organization_id": self.organization_id,
            "workflow_id": self.workflow_id,
            "workflow_instance_id": self.workflow_instance_id,
        }
        if self.workflow_job_id is not None:
            fields["workflow_job_id"] = self.workflow_job_id
        return fields


@dataclass(frozen=True, slots=True)
class CompileResult:
    definition_key: str
    definition_hash: str
    task_count: int
    warnings: tuple[GraphValidationWarning, ...] = ()


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Outcome of a full build. execution_handle is None when no job was in scope."""

    compile: CompileResult
    resource_handle: str
    execution_handle: str | None = None
