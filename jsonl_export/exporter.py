"""
Export of a single table to a JSON Lines file.
"""

import logging
import threading
import time
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .backends import Backend
from .errors import BackendError
from .models import ExportOptions, ExportOutcome, ExportRequest, ExportStatus
from .serializer import serialize_values
from .soft_fail import Classification, SoftFailPolicy

TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"
FILE_EXTENSION = ".jsonl"


class ExportCancelled(Exception):
    """Raised inside the row loop when the run was cancelled."""


@dataclass
class ScanResult:
    """Either an executed cursor ready to stream, or the error that prevented it."""

    connection: Any = None
    cursor: Any = None
    error: Optional[BackendError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def close(self, discard_pending: bool = False) -> None:
        # Closing an unbuffered MySQL cursor reads its remaining rows, so an
        # abandoned scan closes the connection directly.
        logger = logging.getLogger(__name__)
        if self.cursor is not None and not discard_pending:
            try:
                self.cursor.close()
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Failed to close cursor: %s", exc)
        if self.connection is not None:
            try:
                self.connection.close()
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Failed to close connection: %s", exc)
        self.cursor = None
        self.connection = None


def build_file_name(
    request: ExportRequest,
    file_name_prefix: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> str:
    """Return ``{prefix_}{output_name}{_timestamp}.jsonl``."""
    file_name = request.output_name
    if file_name_prefix:
        file_name = f"{file_name_prefix}_{file_name}"
    if timestamp is not None:
        file_name = f"{file_name}_{timestamp.strftime(TIMESTAMP_FORMAT)}"
    return file_name + FILE_EXTENSION


class TableExporter:
    """
    Exports one table per call: own connection, full scan, streamed rows.

    Errors are never raised to the caller; they are reported through the
    returned ExportOutcome.
    """

    def __init__(
        self,
        options: ExportOptions,
        backend: Backend,
        policy: Optional[SoftFailPolicy] = None,
    ):
        self.options = options
        self.backend = backend
        self.policy = policy or SoftFailPolicy()
        self.logger = logging.getLogger(__name__)

    def file_path(
        self, request: ExportRequest, run_timestamp: Optional[datetime] = None
    ) -> Path:
        timestamp = None
        if self.options.append_timestamp:
            timestamp = run_timestamp or datetime.now(timezone.utc)
        name = build_file_name(request, self.options.file_name_prefix, timestamp)
        return self.options.output_directory / name

    def export(
        self,
        request: ExportRequest,
        cancel_event: Optional[threading.Event] = None,
        run_timestamp: Optional[datetime] = None,
    ) -> ExportOutcome:
        """
        Export a table to its JSON Lines file.

        Args:
            request: Table to export
            cancel_event: Run-scoped cancellation signal
            run_timestamp: Timestamp used for file names when enabled

        Returns:
            ExportOutcome describing what happened to this table
        """
        cancel_event = cancel_event or threading.Event()
        thread_name = threading.current_thread().name
        started = time.monotonic()
        file_path = self.file_path(request, run_timestamp)
        table_name = request.table_name

        if cancel_event.is_set():
            return self._cancelled(request, file_path, started)

        self.logger.info("[%s] Start exporting %s", thread_name, table_name)

        scan = self._open_scan(request)
        if not scan.ok:
            scan.close(discard_pending=True)
            return self._scan_failed(request, file_path, scan.error, started)

        try:
            row_count = self._write_rows(scan.cursor, file_path, cancel_event)
        except ExportCancelled:
            scan.close(discard_pending=True)
            return self._cancelled(request, file_path, started)
        except Exception as exc:  # pylint: disable=broad-except
            scan.close(discard_pending=True)
            self.logger.error(
                "[%s] Error writing table %s to %s: %s\n%s",
                thread_name,
                table_name,
                file_path,
                exc,
                traceback.format_exc(),
            )
            return ExportOutcome(
                table_name=table_name,
                file_path=file_path,
                status=ExportStatus.FAILED,
                error_detail=str(exc),
                duration_seconds=time.monotonic() - started,
            )

        scan.close()
        self.logger.info(
            "[%s] DONE: exporting %s to %s (%d rows)",
            thread_name,
            table_name,
            file_path,
            row_count,
        )
        return ExportOutcome(
            table_name=table_name,
            file_path=file_path,
            status=ExportStatus.SUCCEEDED,
            row_count=row_count,
            duration_seconds=time.monotonic() - started,
        )

    def _open_scan(self, request: ExportRequest) -> ScanResult:
        """Connect and execute the full-table query, capturing any failure."""
        scan = ScanResult()
        try:
            query = self.backend.scan_query(request.table_name)
            scan.connection = self.backend.connect(
                self.options.connection_string, self.options
            )
            scan.cursor = self.backend.open_cursor(scan.connection, self.options)
            self.logger.debug("Executing query: %s", query)
            scan.cursor.execute(query)
        except Exception as exc:  # pylint: disable=broad-except
            scan.error = self.backend.to_backend_error(exc)
        return scan

    def _write_rows(self, cursor: Any, file_path: Path, cancel_event: threading.Event) -> int:
        column_names = [column[0] for column in cursor.description or ()]
        row_count = 0
        handle = open(file_path, "w", encoding="utf-8", newline="\n")
        try:
            with handle:
                while True:
                    if cancel_event.is_set():
                        raise ExportCancelled()
                    rows = cursor.fetchmany(self.options.fetch_size)
                    if not rows:
                        break
                    for row in rows:
                        if cancel_event.is_set():
                            raise ExportCancelled()
                        handle.write(serialize_values(column_names, row))
                        handle.write("\n")
                        row_count += 1
        except BaseException:
            self._discard(file_path)
            raise
        return row_count

    def _discard(self, file_path: Path) -> None:
        try:
            file_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.logger.warning("Could not remove partial file %s: %s", file_path, exc)

    def _scan_failed(
        self,
        request: ExportRequest,
        file_path: Path,
        error: BackendError,
        started: float,
    ) -> ExportOutcome:
        thread_name = threading.current_thread().name
        classification = self.policy.classify(error.backend_kind, error.code)

        if (
            classification is Classification.SKIPPABLE
            and self.options.soft_fail_on_missing_table
        ):
            self.logger.warning(
                "[%s] Soft fail, skipping table %s: %s",
                thread_name,
                request.table_name,
                error,
            )
            return ExportOutcome(
                table_name=request.table_name,
                file_path=file_path,
                status=ExportStatus.SKIPPED_MISSING,
                error_detail=str(error),
                duration_seconds=time.monotonic() - started,
            )

        self.logger.error(
            "[%s] Error exporting table %s: %s", thread_name, request.table_name, error
        )
        return ExportOutcome(
            table_name=request.table_name,
            file_path=file_path,
            status=ExportStatus.FAILED,
            error_detail=str(error),
            duration_seconds=time.monotonic() - started,
        )

    def _cancelled(self, request: ExportRequest, file_path: Path, started: float) -> ExportOutcome:
        self.logger.warning(
            "[%s] Export of %s cancelled",
            threading.current_thread().name,
            request.table_name,
        )
        return ExportOutcome(
            table_name=request.table_name,
            file_path=file_path,
            status=ExportStatus.FAILED,
            error_detail="Export cancelled",
            cancelled=True,
            duration_seconds=time.monotonic() - started,
        )
