"""
Data model for table exports: requests, run options and outcomes.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple


class BackendKind(Enum):
    """Supported database backends."""

    MYSQL = "mysql"
    ORACLE = "oracle"

    @classmethod
    def parse(cls, value: str) -> "BackendKind":
        """Resolve a backend name case-insensitively."""
        normalized = (value or "").strip().lower()
        for kind in cls:
            if kind.value == normalized:
                return kind
        allowed = ", ".join(kind.value for kind in cls)
        raise ValueError(f"Unknown backend type '{value}'. Expected one of: {allowed}")


class ExportStatus(Enum):
    """Terminal status of a single table export."""

    SUCCEEDED = "succeeded"
    SKIPPED_MISSING = "skipped_missing"
    FAILED = "failed"


class RunStatus(Enum):
    """Aggregate status of an export run."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"  # declared, never produced
    FAILURE = "failure"


def _check_file_name_part(value: str, label: str) -> None:
    """Reject names that would resolve outside the output directory."""
    if "/" in value or "\\" in value or value in (".", ".."):
        raise ValueError(f"{label} must not contain path separators or be '.' or '..': '{value}'")


@dataclass(frozen=True)
class ExportRequest:
    """One table to export and the base name of its output file."""

    table_name: str
    output_name: str = ""

    def __post_init__(self):
        table_name = (self.table_name or "").strip()
        if not table_name:
            raise ValueError("Table name must not be empty")
        output_name = (self.output_name or "").strip() or table_name
        _check_file_name_part(output_name, "Output file name")
        object.__setattr__(self, "table_name", table_name)
        object.__setattr__(self, "output_name", output_name)

    @classmethod
    def parse(cls, token: str) -> "ExportRequest":
        """
        Parse a ``table[:fileName]`` token.

        Only the first colon separates the table from the file name.
        """
        table_name, _, output_name = (token or "").partition(":")
        if not table_name.strip():
            raise ValueError(f"Missing table name in '{token}'")
        return cls(table_name=table_name, output_name=output_name)


@dataclass(frozen=True)
class ExportOptions:
    """Process-wide settings shared read-only by every table export."""

    backend_kind: BackendKind
    connection_string: str
    output_directory: Path = Path("exports")
    file_name_prefix: Optional[str] = None
    append_timestamp: bool = False
    soft_fail_on_missing_table: bool = False
    max_concurrency: int = field(default_factory=lambda: os.cpu_count() or 1)
    tns_admin_path: Optional[str] = None
    fetch_size: int = 1000

    def __post_init__(self):
        object.__setattr__(self, "output_directory", Path(self.output_directory))
        if self.file_name_prefix:
            _check_file_name_part(self.file_name_prefix, "File name prefix")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if self.fetch_size < 1:
            raise ValueError("fetch_size must be at least 1")


@dataclass(frozen=True)
class ExportOutcome:
    """Result of exporting one table."""

    table_name: str
    file_path: Path
    status: ExportStatus
    row_count: int = 0
    error_detail: Optional[str] = None
    cancelled: bool = False
    duration_seconds: float = 0.0


@dataclass(frozen=True)
class RunResult:
    """All outcomes of a run, in request order."""

    outcomes: Tuple[ExportOutcome, ...]

    @property
    def overall_status(self) -> RunStatus:
        if any(o.status == ExportStatus.FAILED for o in self.outcomes):
            return RunStatus.FAILURE
        return RunStatus.SUCCESS

    @property
    def succeeded(self) -> Tuple[ExportOutcome, ...]:
        return self._with_status(ExportStatus.SUCCEEDED)

    @property
    def skipped(self) -> Tuple[ExportOutcome, ...]:
        return self._with_status(ExportStatus.SKIPPED_MISSING)

    @property
    def failed(self) -> Tuple[ExportOutcome, ...]:
        return self._with_status(ExportStatus.FAILED)

    @property
    def exit_code(self) -> int:
        return 0 if self.overall_status == RunStatus.SUCCESS else 1

    def _with_status(self, status: ExportStatus) -> Tuple[ExportOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status == status)
