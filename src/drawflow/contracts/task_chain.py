# src/drawflow/contracts/task_chain.py
"""Task-chain definition consumed by the execution engine.

A definition is a linear chain of tasks keyed by node id. Parameter keys
ending in ``.$`` are references: their value is a ``$.``-rooted path into
the running execution state, resolved by the engine when the task starts.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

REFERENCE_SUFFIX = ".$"


class Task(BaseModel):
    """One step of the chain, executed by the resource named in resource_ref."""

    model_config = {"frozen": True}

    resource_ref: str = Field(min_length=1)
    comment: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)
    next: str | None = None
    terminal: bool = False


class TaskChainDefinition(BaseModel):
    model_config = {"frozen": True}

    start_node_id: str
    tasks: dict[str, Task]

    def ordered_task_ids(self) -> list[str]:
        """Task ids in execution order, following next from the start."""
        order: list[str] = []
        current: str | None = self.start_node_id
        while current is not None and current in self.tasks and current not in order:
            order.append(current)
            current = self.tasks[current].next
        return order
