"""
JSONL Export - dump relational tables to JSON Lines files.

Exports whole MySQL and Oracle tables concurrently, one output file per
table, isolating failures per table.
"""

__version__ = "1.0.0"
__author__ = "Data Engineering Team"

# Main classes for public API
from .backends import Backend, MySQLBackend, OracleBackend, default_backends
from .config import AppSettings, ConfigManager
from .core import ExportCoordinator
from .errors import BackendError, UsageError
from .exporter import TableExporter
from .health import HealthChecker, HealthStatus
from .logging_config import setup_logging
from .models import (
    BackendKind,
    ExportOptions,
    ExportOutcome,
    ExportRequest,
    ExportStatus,
    RunResult,
    RunStatus,
)
from .serializer import serialize_row
from .soft_fail import SoftFailPolicy

__all__ = [
    "AppSettings",
    "Backend",
    "BackendError",
    "BackendKind",
    "ConfigManager",
    "ExportCoordinator",
    "ExportOptions",
    "ExportOutcome",
    "ExportRequest",
    "ExportStatus",
    "HealthChecker",
    "HealthStatus",
    "MySQLBackend",
    "OracleBackend",
    "RunResult",
    "RunStatus",
    "SoftFailPolicy",
    "TableExporter",
    "UsageError",
    "default_backends",
    "serialize_row",
    "setup_logging",
]
