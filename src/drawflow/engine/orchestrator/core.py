# src/drawflow/engine/orchestrator/core.py
"""BuildOrchestrator: turns a stored workflow graph into a running execution.

Stages, each idempotent and independently invocable:
1. compile      - graph to task-chain definition, validated and stored
2. register     - create or update the execution resource
3. await_ready  - bounded poll until the resource is ACTIVE
4. trigger      - start an execution for the job in scope

A failure in stages 1-3 marks the instance BUILD_FAILED. A failure in any
stage with a job in scope marks the job as failed before execution and,
for loggable errors, appends a job log entry. The original exception is
always re-raised.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, TypeVar

from tenacity import RetryCallState, RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from drawflow.contracts.enums import ResourceStatus, WorkflowInstanceStatus, WorkflowLogLevel
from drawflow.contracts.errors import (
    BuildTimeoutError,
    DefinitionRejectedError,
    ExecutionEngineError,
    InstanceNotReadyError,
    LoggableWorkflowError,
    MissingDefinitionError,
    TriggerError,
)
from drawflow.contracts.ports import BlobStore, EntityStore, ExecutionEngine
from drawflow.contracts.workflow import WorkflowJobLog
from drawflow.core.canonical import canonical_json, stable_hash
from drawflow.core.config import DrawflowSettings
from drawflow.core.graph import ResourceRegistry, TaskChainCompiler, WorkflowGraph
from drawflow.core.logging import get_logger
from drawflow.core.store._helpers import generate_id
from drawflow.engine.clock import DEFAULT_CLOCK, Clock
from drawflow.engine.orchestrator.types import BuildContext, BuildResult, BuildStage, CompileResult

logger = get_logger(__name__)

T = TypeVar("T")

DEFINITION_FILENAME = "task-chain.json"


def definition_key(ctx: BuildContext) -> str:
    """Blob key of the compiled definition. Stable across retries."""
    return f"{ctx.organization_id}/{ctx.workflow_id}/{ctx.workflow_instance_id}/{DEFINITION_FILENAME}"


class BuildOrchestrator:
    """Runs the build stages against injected stores and execution engine.

    Args:
        entity_store: Workflow entity persistence
        blob_store: Storage for definitions and documents
        execution_engine: Runs compiled task chains
        resource_registry: Resource reference per functional node type
        settings: Polling interval and readiness bound come from settings.build
        clock: Time source; await_ready sleeps through it
    """

    def __init__(
        self,
        entity_store: EntityStore,
        blob_store: BlobStore,
        execution_engine: ExecutionEngine,
        resource_registry: ResourceRegistry,
        settings: DrawflowSettings,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._store = entity_store
        self._blobs = blob_store
        self._engine = execution_engine
        self._compiler = TaskChainCompiler(resource_registry, blob_store.uri_for)
        self._settings = settings
        self._clock = clock or DEFAULT_CLOCK

    def run(self, ctx: BuildContext) -> BuildResult:
        """Run all four stages in order."""
        compiled = self.compile(ctx)
        resource_handle = self.register(ctx)
        self.await_ready(ctx)
        execution_handle = self.trigger(ctx)
        return BuildResult(compile=compiled, resource_handle=resource_handle, execution_handle=execution_handle)

    # =========================================================================
    # Stages
    # =========================================================================

    def compile(self, ctx: BuildContext) -> CompileResult:
        """Compile the instance graph and store the definition.

        Raises:
            StructuralGraphError: Invalid graph shape
            DataResolutionError: Unresolvable resource or input document
            DefinitionRejectedError: The execution engine rejected the definition
        """
        return self._stage(BuildStage.COMPILE, ctx, lambda: self._compile(ctx))

    def register(self, ctx: BuildContext) -> str:
        """Create or update the execution resource and return its handle.

        Raises:
            MissingDefinitionError: compile has not stored a definition
        """
        return self._stage(BuildStage.REGISTER, ctx, lambda: self._register(ctx))

    def await_ready(self, ctx: BuildContext) -> None:
        """Wait for the resource to become ACTIVE, then mark the instance READY.

        Raises:
            BuildTimeoutError: Not ACTIVE within settings.build.ready_timeout_seconds
        """
        self._stage(BuildStage.AWAIT_READY, ctx, lambda: self._await_ready(ctx))

    def trigger(self, ctx: BuildContext) -> str | None:
        """Start an execution for the job in scope; no-op without a job.

        Raises:
            InstanceNotReadyError: The instance is not READY
            TriggerError: Starting the execution or recording it failed
        """
        return self._stage(BuildStage.TRIGGER, ctx, lambda: self._trigger(ctx))

    # =========================================================================
    # Stage bodies
    # =========================================================================

    def _compile(self, ctx: BuildContext) -> CompileResult:
        instance_id = ctx.workflow_instance_id
        self._store.update_instance(instance_id, status=WorkflowInstanceStatus.BUILD_STARTED)

        nodes = self._store.list_nodes(instance_id)
        edges = self._store.list_edges(instance_id)
        documents = self._store.list_documents_for_nodes([n.id for n in nodes])
        graph = WorkflowGraph.from_records(nodes, edges, documents)

        compiled = self._compiler.compile(graph, ctx.organization_id)
        definition = compiled.definition.model_dump(mode="json")

        problems = self._engine.validate_definition(definition)
        if problems:
            raise DefinitionRejectedError(problems)

        key = definition_key(ctx)
        self._blobs.write(key, canonical_json(definition), "application/json")
        self._store.update_instance(instance_id, definition_key=key)
        result = CompileResult(
            definition_key=key,
            definition_hash=stable_hash(definition),
            task_count=len(compiled.definition.tasks),
            warnings=compiled.warnings,
        )
        logger.info(
            "task_chain_compiled",
            definition_key=key,
            definition_hash=result.definition_hash,
            task_count=result.task_count,
            **ctx.log_fields(),
        )
        return result

    def _load_definition(self, ctx: BuildContext) -> dict[str, Any]:
        instance = self._store.get_instance(ctx.workflow_instance_id)
        if instance.definition_key is None or not self._blobs.exists(instance.definition_key):
            raise MissingDefinitionError(ctx.workflow_instance_id)
        definition: dict[str, Any] = json.loads(self._blobs.read(instance.definition_key))
        return definition

    def _register(self, ctx: BuildContext) -> str:
        definition = self._load_definition(ctx)
        instance = self._store.get_instance(ctx.workflow_instance_id)
        if instance.execution_handle is None:
            handle = self._engine.create_resource(ctx.workflow_instance_id, definition)
            self._store.update_instance(ctx.workflow_instance_id, execution_handle=handle)
            logger.info("execution_resource_created", resource_handle=handle, **ctx.log_fields())
            return handle
        self._engine.update_resource(instance.execution_handle, definition)
        logger.info("execution_resource_updated", resource_handle=instance.execution_handle, **ctx.log_fields())
        return instance.execution_handle

    def _await_ready(self, ctx: BuildContext) -> None:
        instance = self._store.get_instance(ctx.workflow_instance_id)
        handle = instance.execution_handle
        if handle is None:
            raise ExecutionEngineError(f"Workflow instance {ctx.workflow_instance_id} has no registered resource")

        build = self._settings.build

        def log_not_ready(retry_state: RetryCallState) -> None:
            logger.debug(
                "execution_resource_not_ready",
                resource_handle=handle,
                attempt=retry_state.attempt_number,
                **ctx.log_fields(),
            )

        retrying = Retrying(
            stop=stop_after_attempt(build.max_poll_attempts),
            wait=wait_fixed(build.poll_interval_seconds),
            retry=retry_if_result(lambda status: status is not ResourceStatus.ACTIVE),
            sleep=self._clock.sleep,
            before_sleep=log_not_ready,
        )
        try:
            retrying(self._engine.describe_resource, handle)
        except RetryError as exc:
            raise BuildTimeoutError(handle, build.ready_timeout_seconds) from exc

        self._store.update_instance(ctx.workflow_instance_id, status=WorkflowInstanceStatus.READY)

    def _trigger(self, ctx: BuildContext) -> str | None:
        if ctx.workflow_job_id is None:
            logger.info("trigger_skipped_no_job", **ctx.log_fields())
            return None

        instance = self._store.get_instance(ctx.workflow_instance_id)
        if instance.status != WorkflowInstanceStatus.READY or instance.execution_handle is None:
            raise InstanceNotReadyError(ctx.workflow_instance_id, str(instance.status))

        input_data = {
            "context": {
                "organization_id": ctx.organization_id,
                "workflow_job_id": ctx.workflow_job_id,
            }
        }
        try:
            execution_handle = self._engine.start_execution(instance.execution_handle, input_data)
            self._store.update_job(ctx.workflow_job_id, execution_handle=execution_handle)
        except Exception as exc:
            raise TriggerError(f"Failed to start execution for job {ctx.workflow_job_id}") from exc
        return execution_handle

    # =========================================================================
    # Failure handling
    # =========================================================================

    def _stage(self, stage: BuildStage, ctx: BuildContext, body: Callable[[], T]) -> T:
        log = logger.bind(stage=str(stage), **ctx.log_fields())
        log.info("build_stage_started")
        try:
            result = body()
        except Exception as exc:
            log.error("build_stage_failed", error=str(exc), error_type=type(exc).__name__)
            self._record_failure(stage, ctx, exc)
            raise
        log.info("build_stage_completed")
        return result

    def _record_failure(self, stage: BuildStage, ctx: BuildContext, exc: Exception) -> None:
        if stage.fails_build:
            self._store.update_instance(ctx.workflow_instance_id, status=WorkflowInstanceStatus.BUILD_FAILED)
        if ctx.workflow_job_id is None:
            return
        if isinstance(exc, LoggableWorkflowError):
            self._store.append_job_log(
                WorkflowJobLog(
                    id=generate_id(),
                    workflow_job_id=ctx.workflow_job_id,
                    level=WorkflowLogLevel.ERROR,
                    message_key=exc.message_key,
                    message_params=exc.message_params,
                )
            )
        self._store.update_job(ctx.workflow_job_id, pre_execution_failure=True)
