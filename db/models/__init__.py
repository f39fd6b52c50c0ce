"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.execution_log import ExecutionLogRecord
from db.models.sync_state_value import SyncStateValue
from db.models.sync_table import SyncTable, SyncTableRow

__all__ = [
    "ExecutionLogRecord",
    "SyncStateValue",
    "SyncTable",
    "SyncTableRow",
]
