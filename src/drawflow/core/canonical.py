# src/drawflow/core/canonical.py
"""
Canonical JSON serialization for task-chain definitions.

Definitions are serialized per RFC 8785/JCS (rfc8785 package) so that the
same graph always produces byte-identical output and therefore the same
stored blob and the same hash.

NaN and Infinity are rejected, not converted.
"""

from __future__ import annotations

import hashlib
import math
from enum import Enum
from typing import Any

import rfc8785

# Version string stored alongside each definition hash
CANONICAL_VERSION = "sha256-rfc8785-v1"


def _normalize(obj: Any) -> Any:
    """Recursively convert a value to JSON-safe primitives.

    Raises:
        ValueError: If a float is NaN or Infinity
    """
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise ValueError(f"Cannot canonicalize non-finite float: {obj}")
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {str(k): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, list | tuple):
        return [_normalize(v) for v in obj]
    return obj


def canonical_json(obj: Any) -> bytes:
    """Serialize obj to canonical JSON bytes."""
    return rfc8785.dumps(_normalize(obj))


def stable_hash(obj: Any) -> str:
    """SHA-256 hex digest of the canonical JSON form of obj."""
    return hashlib.sha256(canonical_json(obj)).hexdigest()
