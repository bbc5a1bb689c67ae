# src/drawflow/engine/local.py
"""In-process execution engine.

Implements the ExecutionEngine port for development, the CLI and tests.
Resources hold a validated task-chain definition and become ACTIVE once
their activation delay has elapsed on the injected clock. Executions run
synchronously inside start_execution(): each task's parameters are resolved
against the running state and passed to the handler registered for the
task's resource reference; the handler's return value becomes the new
state.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from drawflow.contracts.enums import ExecutionStatus, ResourceStatus
from drawflow.contracts.errors import DefinitionRejectedError, ExecutionEngineError
from drawflow.contracts.task_chain import REFERENCE_SUFFIX, TaskChainDefinition
from drawflow.core.logging import get_logger
from drawflow.engine.clock import DEFAULT_CLOCK, Clock

logger = get_logger(__name__)

_RESOURCE_PREFIX = "local://resources/"

NodeHandler = Callable[[dict[str, Any]], dict[str, Any]]
"""Takes the resolved task parameters, returns the next execution state."""


@dataclass
class _Resource:
    name: str
    definition: TaskChainDefinition
    active_at: float


@dataclass(frozen=True, slots=True)
class ExecutionRecord:
    """Outcome of one execution."""

    handle: str
    resource_handle: str
    status: ExecutionStatus
    output: dict[str, Any] | None = None
    error: str | None = None
    failed_task: str | None = None


def resolve_path(state: Mapping[str, Any], path: str) -> Any:
    """Look up a ``$.a.b`` path in state.

    Raises:
        KeyError: If path is malformed or any segment is missing
    """
    if path == "$":
        return state
    if not path.startswith("$."):
        raise KeyError(f"Reference path must start with '$.': {path!r}")
    current: Any = state
    for segment in path[2:].split("."):
        if not isinstance(current, Mapping) or segment not in current:
            raise KeyError(f"Reference path {path!r} not found in execution state")
        current = current[segment]
    return current


def resolve_parameters(parameters: Mapping[str, Any], state: Mapping[str, Any]) -> dict[str, Any]:
    """Replace every ``key.$`` entry with ``key`` bound to the referenced state value."""
    resolved: dict[str, Any] = {}
    for key, value in parameters.items():
        if key.endswith(REFERENCE_SUFFIX):
            resolved[key[: -len(REFERENCE_SUFFIX)]] = resolve_path(state, value)
        elif isinstance(value, Mapping):
            resolved[key] = resolve_parameters(value, state)
        else:
            resolved[key] = value
    return resolved


class LocalExecutionEngine:
    """ExecutionEngine that runs task chains in the calling thread.

    Args:
        handlers: Node handler per resource reference
        clock: Time source for resource activation
        activation_delay: Seconds a created or updated resource stays CREATING
    """

    def __init__(
        self,
        handlers: Mapping[str, NodeHandler],
        *,
        clock: Clock | None = None,
        activation_delay: float = 0.0,
    ) -> None:
        if activation_delay < 0:
            raise ValueError(f"activation_delay must be non-negative, got {activation_delay}")
        self._handlers = dict(handlers)
        self._clock = clock or DEFAULT_CLOCK
        self._activation_delay = activation_delay
        self._resources: dict[str, _Resource] = {}
        self._executions: dict[str, ExecutionRecord] = {}
        self._lock = threading.Lock()

    def validate_definition(self, definition: dict[str, Any]) -> list[str]:
        try:
            chain = TaskChainDefinition.model_validate(definition)
        except ValidationError as exc:
            return [f"{'.'.join(str(p) for p in err['loc']) or 'definition'}: {err['msg']}" for err in exc.errors()]

        problems: list[str] = []
        if chain.start_node_id not in chain.tasks:
            problems.append(f"Start task {chain.start_node_id} is not defined")
        for task_id, task in chain.tasks.items():
            if task.resource_ref not in self._handlers:
                problems.append(f"Task {task_id} references unknown resource {task.resource_ref}")
            if task.terminal and task.next is not None:
                problems.append(f"Terminal task {task_id} must not have a next task")
            if not task.terminal and task.next is None:
                problems.append(f"Task {task_id} has no next task and is not terminal")
            if task.next is not None and task.next not in chain.tasks:
                problems.append(f"Task {task_id} continues to undefined task {task.next}")

        if not problems:
            ordered = chain.ordered_task_ids()
            last = chain.tasks[ordered[-1]]
            if not last.terminal:
                problems.append(f"Task chain loops back to {last.next}")
            elif len(ordered) != len(chain.tasks):
                unreachable = sorted(set(chain.tasks) - set(ordered))
                problems.append(f"Tasks not reachable from the start: {', '.join(unreachable)}")
        return problems

    def _checked(self, definition: dict[str, Any]) -> TaskChainDefinition:
        problems = self.validate_definition(definition)
        if problems:
            raise DefinitionRejectedError(problems)
        return TaskChainDefinition.model_validate(definition)

    def create_resource(self, name: str, definition: dict[str, Any]) -> str:
        """Create a resource named name.

        Raises:
            DefinitionRejectedError: If definition fails validation
            ExecutionEngineError: If a resource with that name exists
        """
        chain = self._checked(definition)
        handle = f"{_RESOURCE_PREFIX}{name}"
        with self._lock:
            if handle in self._resources:
                raise ExecutionEngineError(f"Resource {name} already exists")
            self._resources[handle] = _Resource(
                name=name,
                definition=chain,
                active_at=self._clock.monotonic() + self._activation_delay,
            )
        logger.info("resource_created", resource_handle=handle, tasks=len(chain.tasks))
        return handle

    def update_resource(self, handle: str, definition: dict[str, Any]) -> None:
        """Replace the definition of a resource.

        Local resources do not outlive the process, so a well-formed handle
        from an earlier process is registered again under the same name.

        Raises:
            DefinitionRejectedError: If definition fails validation
            ExecutionEngineError: If handle is not a local resource handle
        """
        chain = self._checked(definition)
        if not handle.startswith(_RESOURCE_PREFIX) or handle == _RESOURCE_PREFIX:
            raise ExecutionEngineError(f"Unknown resource {handle}")
        active_at = self._clock.monotonic() + self._activation_delay
        with self._lock:
            resource = self._resources.get(handle)
            if resource is None:
                self._resources[handle] = _Resource(
                    name=handle[len(_RESOURCE_PREFIX) :], definition=chain, active_at=active_at
                )
            else:
                resource.definition = chain
                resource.active_at = active_at
        logger.info("resource_updated", resource_handle=handle, tasks=len(chain.tasks))

    def describe_resource(self, handle: str) -> ResourceStatus:
        with self._lock:
            resource = self._resource(handle)
            active = self._clock.monotonic() >= resource.active_at
        return ResourceStatus.ACTIVE if active else ResourceStatus.CREATING

    def definition_of(self, handle: str) -> TaskChainDefinition:
        with self._lock:
            return self._resource(handle).definition

    def _resource(self, handle: str) -> _Resource:
        if handle not in self._resources:
            raise ExecutionEngineError(f"Unknown resource {handle}")
        return self._resources[handle]

    def start_execution(self, handle: str, input_data: dict[str, Any]) -> str:
        """Run the resource's chain to completion and return the execution handle.

        A failing task ends the execution as FAILED; the failure is recorded
        on the execution rather than raised.

        Raises:
            ExecutionEngineError: If the resource is unknown or not ACTIVE
        """
        if self.describe_resource(handle) is not ResourceStatus.ACTIVE:
            raise ExecutionEngineError(f"Resource {handle} is not active")
        chain = self.definition_of(handle)
        execution_handle = f"{handle}/executions/{uuid.uuid4().hex}"
        log = logger.bind(execution_handle=execution_handle)
        log.info("execution_started", tasks=len(chain.tasks))

        state: dict[str, Any] = input_data
        task_id: str | None = chain.start_node_id
        record: ExecutionRecord
        try:
            while task_id is not None:
                task = chain.tasks[task_id]
                log.debug("task_started", task_id=task_id, resource_ref=task.resource_ref)
                state = self._handlers[task.resource_ref](resolve_parameters(task.parameters, state))
                task_id = task.next
        except Exception as exc:
            log.warning("execution_failed", task_id=task_id, error=str(exc), error_type=type(exc).__name__)
            record = ExecutionRecord(
                handle=execution_handle,
                resource_handle=handle,
                status=ExecutionStatus.FAILED,
                error=f"{type(exc).__name__}: {exc}",
                failed_task=task_id,
            )
        else:
            log.info("execution_succeeded")
            record = ExecutionRecord(
                handle=execution_handle,
                resource_handle=handle,
                status=ExecutionStatus.SUCCEEDED,
                output=state,
            )

        with self._lock:
            self._executions[execution_handle] = record
        return execution_handle

    def execution(self, execution_handle: str) -> ExecutionRecord:
        with self._lock:
            if execution_handle not in self._executions:
                raise ExecutionEngineError(f"Unknown execution {execution_handle}")
            return self._executions[execution_handle]

    def describe_execution(self, execution_handle: str) -> ExecutionStatus:
        return self.execution(execution_handle).status
