"""Entity store: SQLAlchemy Core persistence for workflow entities."""

from drawflow.core.store.database import DatabaseOps, EntityDatabase
from drawflow.core.store.sql_store import SqlEntityStore

__all__ = ["DatabaseOps", "EntityDatabase", "SqlEntityStore"]
