"""
app/repositories package marker.
"""

from app.repositories.execution_log_repository import SQLExecutionLogSink
from app.repositories.sync_state_repository import SQLStateStore
from app.repositories.sync_table_repository import SQLTableSink, StoredTable, format_cell_value

__all__ = [
    "SQLExecutionLogSink",
    "SQLStateStore",
    "SQLTableSink",
    "StoredTable",
    "format_cell_value",
]
