# tests/unit/engine/test_build_orchestrator.py
"""Tests for BuildOrchestrator stages and failure recording.

Every test runs against the SQL entity store, the in-memory blob store and
the local execution engine sharing one MockClock, so readiness polling
never waits.
"""

import json
from typing import Any

import pytest

from drawflow.contracts.enums import (
    ExecutionStatus,
    WorkflowInstanceStatus,
    WorkflowLogLevel,
    WorkflowMessageKey,
    WorkflowNodeType,
)
from drawflow.contracts.errors import (
    BuildTimeoutError,
    CycleDetectedError,
    DefinitionRejectedError,
    ExecutionEngineError,
    InstanceNotReadyError,
    MissingDefinitionError,
    NoStartNodeFoundError,
    TriggerError,
)
from drawflow.contracts.workflow import WorkflowEdgeRecord, WorkflowInstance, WorkflowJob, WorkflowNodeRecord
from drawflow.core.blob_store import InMemoryBlobStore
from drawflow.core.canonical import canonical_json, stable_hash
from drawflow.core.config import DrawflowSettings
from drawflow.core.graph import ResourceRegistry
from drawflow.core.store import SqlEntityStore
from drawflow.engine.clock import MockClock
from drawflow.engine.local import LocalExecutionEngine
from drawflow.engine.orchestrator import BuildContext, BuildOrchestrator, definition_key
from drawflow.nodes import NodeServices, build_node_handlers

ORG = "org-1"
INSTANCE = "inst-1"
JOB = "job-1"


def _seed(store: SqlEntityStore, edges: list[tuple[str, str]]) -> None:
    store.create_instance(WorkflowInstance(id=INSTANCE, organization_id=ORG, workflow_id="wf-1"))
    for node_id in dict.fromkeys(n for edge in edges for n in edge):
        store.add_node(WorkflowNodeRecord(id=node_id, workflow_instance_id=INSTANCE, node_type=WorkflowNodeType.NOOP.value))
    for index, (source, target) in enumerate(edges):
        store.add_edge(WorkflowEdgeRecord(id=f"e{index}", workflow_instance_id=INSTANCE, source_node_id=source, target_node_id=target))


def _context(store: SqlEntityStore, *, with_job: bool = False) -> BuildContext:
    job_id = None
    if with_job:
        job_id = store.create_job(WorkflowJob(id=JOB, organization_id=ORG, workflow_instance_id=INSTANCE)).id
    return BuildContext(organization_id=ORG, workflow_id="wf-1", workflow_instance_id=INSTANCE, workflow_job_id=job_id)


class CountingEngine(LocalExecutionEngine):
    """Local engine that counts resource creation and updates."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.created = 0
        self.updated = 0

    def create_resource(self, name: str, definition: dict[str, Any]) -> str:
        self.created += 1
        return super().create_resource(name, definition)

    def update_resource(self, handle: str, definition: dict[str, Any]) -> None:
        self.updated += 1
        super().update_resource(handle, definition)


class Harness:
    def __init__(
        self,
        store: SqlEntityStore,
        blobs: InMemoryBlobStore,
        settings: DrawflowSettings,
        clock: MockClock,
        *,
        activation_delay: float = 0.0,
        handlers: dict[str, Any] | None = None,
    ) -> None:
        self.store = store
        self.blobs = blobs
        self.settings = settings
        self.clock = clock
        if handlers is None:
            handlers = build_node_handlers(NodeServices(store, blobs), settings.resources)
        self.engine = CountingEngine(handlers, clock=clock, activation_delay=activation_delay)
        self.orchestrator = BuildOrchestrator(store, blobs, self.engine, ResourceRegistry(settings.resources), settings, clock=clock)

    def instance(self) -> WorkflowInstance:
        return self.store.get_instance(INSTANCE)


@pytest.fixture
def harness(entity_store: SqlEntityStore, blob_store: InMemoryBlobStore, fast_settings: DrawflowSettings, mock_clock: MockClock) -> Harness:
    return Harness(entity_store, blob_store, fast_settings, mock_clock)


class TestSuccessfulBuild:
    def test_run_without_job_stops_at_ready(self, harness: Harness) -> None:
        _seed(harness.store, [("a", "b")])
        ctx = _context(harness.store)

        result = harness.orchestrator.run(ctx)

        instance = harness.instance()
        assert instance.status is WorkflowInstanceStatus.READY
        assert instance.definition_key == definition_key(ctx) == f"{ORG}/wf-1/{INSTANCE}/task-chain.json"
        assert instance.execution_handle == result.resource_handle == f"local://resources/{INSTANCE}"
        assert result.execution_handle is None
        assert result.compile.task_count == 2

    def test_stored_definition_is_canonical_and_hashed(self, harness: Harness) -> None:
        _seed(harness.store, [("a", "b")])

        compiled = harness.orchestrator.compile(_context(harness.store))

        raw = harness.blobs.read(compiled.definition_key)
        definition = json.loads(raw)
        assert definition["start_node_id"] == "a"
        assert compiled.definition_hash == stable_hash(definition)
        assert raw == canonical_json(definition)

    def test_compile_is_deterministic(self, harness: Harness) -> None:
        _seed(harness.store, [("a", "b"), ("b", "c")])
        ctx = _context(harness.store)

        first = harness.orchestrator.compile(ctx)
        second = harness.orchestrator.compile(ctx)

        assert first.definition_hash == second.definition_hash

    def test_second_build_updates_resource(self, harness: Harness) -> None:
        _seed(harness.store, [("a", "b")])
        ctx = _context(harness.store)

        first = harness.orchestrator.run(ctx)
        second = harness.orchestrator.run(ctx)

        assert first.resource_handle == second.resource_handle
        assert (harness.engine.created, harness.engine.updated) == (1, 1)

    def test_await_ready_polls_through_clock(
        self, entity_store: SqlEntityStore, blob_store: InMemoryBlobStore, fast_settings: DrawflowSettings, mock_clock: MockClock
    ) -> None:
        harness = Harness(entity_store, blob_store, fast_settings, mock_clock, activation_delay=2.5)
        _seed(harness.store, [("a", "b")])

        harness.orchestrator.run(_context(harness.store))

        assert mock_clock.sleeps == [1.0, 1.0, 1.0]
        assert harness.instance().status is WorkflowInstanceStatus.READY

    def test_trigger_starts_execution_for_job(self, harness: Harness) -> None:
        _seed(harness.store, [("a", "b")])
        ctx = _context(harness.store, with_job=True)

        result = harness.orchestrator.run(ctx)

        assert result.execution_handle is not None
        job = harness.store.get_job(JOB)
        assert job.execution_handle == result.execution_handle
        assert not job.pre_execution_failure
        assert harness.engine.describe_execution(result.execution_handle) is ExecutionStatus.SUCCEEDED
        assert [r.node_id for r in harness.store.list_node_results(JOB)] == ["a", "b"]


class TestStageFailures:
    def test_compile_error_logged_to_job(self, harness: Harness) -> None:
        _seed(harness.store, [("a", "b"), ("b", "c"), ("c", "b")])
        ctx = _context(harness.store, with_job=True)

        with pytest.raises(CycleDetectedError):
            harness.orchestrator.run(ctx)

        assert harness.instance().status is WorkflowInstanceStatus.BUILD_FAILED
        (log,) = harness.store.list_job_logs(JOB)
        assert log.level is WorkflowLogLevel.ERROR
        assert log.message_key is WorkflowMessageKey.CYCLE_DETECTED
        assert log.message_params == (("workflowNodeId", "b"),)
        assert log.workflow_node_id is None
        assert harness.store.get_job(JOB).pre_execution_failure

    def test_compile_error_without_job_only_marks_instance(self, harness: Harness) -> None:
        _seed(harness.store, [("a", "b"), ("b", "c"), ("c", "a")])

        with pytest.raises(NoStartNodeFoundError):
            harness.orchestrator.compile(_context(harness.store))

        assert harness.instance().status is WorkflowInstanceStatus.BUILD_FAILED

    def test_rejected_definition_is_not_logged(
        self, entity_store: SqlEntityStore, blob_store: InMemoryBlobStore, fast_settings: DrawflowSettings, mock_clock: MockClock
    ) -> None:
        harness = Harness(entity_store, blob_store, fast_settings, mock_clock, handlers={})
        _seed(harness.store, [("a", "b")])

        with pytest.raises(DefinitionRejectedError):
            harness.orchestrator.run(_context(harness.store, with_job=True))

        assert harness.instance().status is WorkflowInstanceStatus.BUILD_FAILED
        assert harness.instance().definition_key is None
        assert harness.store.list_job_logs(JOB) == []
        assert harness.store.get_job(JOB).pre_execution_failure

    def test_register_before_compile(self, harness: Harness) -> None:
        _seed(harness.store, [("a", "b")])

        with pytest.raises(MissingDefinitionError):
            harness.orchestrator.register(_context(harness.store))

        assert harness.instance().status is WorkflowInstanceStatus.BUILD_FAILED

    def test_await_ready_before_register(self, harness: Harness) -> None:
        _seed(harness.store, [("a", "b")])

        with pytest.raises(ExecutionEngineError):
            harness.orchestrator.await_ready(_context(harness.store))

    def test_await_ready_times_out(
        self, entity_store: SqlEntityStore, blob_store: InMemoryBlobStore, fast_settings: DrawflowSettings, mock_clock: MockClock
    ) -> None:
        harness = Harness(entity_store, blob_store, fast_settings, mock_clock, activation_delay=100.0)
        _seed(harness.store, [("a", "b")])
        ctx = _context(harness.store, with_job=True)

        with pytest.raises(BuildTimeoutError) as exc_info:
            harness.orchestrator.run(ctx)

        assert exc_info.value.message_key is WorkflowMessageKey.READY_TIMEOUT
        assert exc_info.value.timeout_seconds == 5.0
        assert mock_clock.sleeps == [1.0] * 5
        assert harness.instance().status is WorkflowInstanceStatus.BUILD_FAILED
        (log,) = harness.store.list_job_logs(JOB)
        assert log.message_key is WorkflowMessageKey.READY_TIMEOUT


class TestTrigger:
    def test_no_job_is_a_no_op(self, harness: Harness) -> None:
        _seed(harness.store, [("a", "b")])

        assert harness.orchestrator.trigger(_context(harness.store)) is None
        assert harness.instance().status is WorkflowInstanceStatus.BUILD_NEEDED

    def test_instance_not_ready(self, harness: Harness) -> None:
        _seed(harness.store, [("a", "b")])
        ctx = _context(harness.store, with_job=True)

        with pytest.raises(InstanceNotReadyError):
            harness.orchestrator.trigger(ctx)

        assert harness.instance().status is WorkflowInstanceStatus.BUILD_NEEDED
        assert harness.store.get_job(JOB).pre_execution_failure
        assert harness.store.list_job_logs(JOB) == []

    def test_start_failure_wrapped(self, harness: Harness, monkeypatch: pytest.MonkeyPatch) -> None:
        _seed(harness.store, [("a", "b")])
        ctx = _context(harness.store, with_job=True)
        harness.orchestrator.compile(ctx)
        harness.orchestrator.register(ctx)
        harness.orchestrator.await_ready(ctx)

        def refuse(handle: str, input_data: dict[str, Any]) -> str:
            raise ExecutionEngineError("throttled")

        monkeypatch.setattr(harness.engine, "start_execution", refuse)

        with pytest.raises(TriggerError) as exc_info:
            harness.orchestrator.trigger(ctx)

        assert isinstance(exc_info.value.__cause__, ExecutionEngineError)
        assert harness.instance().status is WorkflowInstanceStatus.READY
        assert harness.store.get_job(JOB).pre_execution_failure
