# src/drawflow/core/store/_helpers.py
"""Id and timestamp sources shared by the entity store, nodes and the orchestrator.

Ids are opaque 32-character hex strings. Timestamps are timezone-aware UTC
so created_at/updated_at columns compare correctly across processes.
"""

import uuid
from datetime import UTC, datetime


def now() -> datetime:
    return datetime.now(UTC)


def generate_id() -> str:
    """New entity, job log or node result id."""
    return uuid.uuid4().hex
