"""
Concurrent export of many tables to JSON Lines files.
Runs one table export per worker thread over a bounded pool.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .backends import Backend, default_backends
from .errors import UsageError
from .exporter import TableExporter
from .models import (
    BackendKind,
    ExportOptions,
    ExportOutcome,
    ExportRequest,
    ExportStatus,
    RunResult,
    RunStatus,
)
from .soft_fail import SoftFailPolicy


class ExportCoordinator:
    """
    Fans table exports out over a thread pool and aggregates their outcomes.

    The coordinator never opens connections or writes file contents itself;
    each table is handled by a TableExporter on a worker thread.
    """

    def __init__(
        self,
        options: ExportOptions,
        backends: Optional[Mapping[BackendKind, Backend]] = None,
        policy: Optional[SoftFailPolicy] = None,
    ):
        """
        Initialize the ExportCoordinator.

        Args:
            options: Run-wide export options
            backends: Backend per backend kind (default: MySQL and Oracle)
            policy: Soft-fail policy (default: built-in error codes)
        """
        self.options = options
        self.backends = dict(backends) if backends is not None else default_backends()
        self.policy = policy or SoftFailPolicy()
        self.max_workers = options.max_concurrency
        self.cancel_event = threading.Event()
        self.logger = logging.getLogger(__name__)

    def cancel(self) -> None:
        """Ask in-flight exports to stop and queued ones not to start."""
        self.cancel_event.set()

    def _create_exporter(self) -> TableExporter:
        backend = self.backends.get(self.options.backend_kind)
        if backend is None:
            raise UsageError(
                f"No backend configured for '{self.options.backend_kind.value}'"
            )
        return TableExporter(self.options, backend, self.policy)

    def _check_collisions(
        self, exporter: TableExporter, requests: Sequence[ExportRequest], run_timestamp: datetime
    ) -> None:
        seen: Dict[Path, str] = {}
        for request in requests:
            path = exporter.file_path(request, run_timestamp)
            if path in seen:
                raise UsageError(
                    f"Tables '{seen[path]}' and '{request.table_name}' "
                    f"would both be written to {path}"
                )
            seen[path] = request.table_name

    def run(
        self,
        requests: Sequence[ExportRequest],
        cancel_event: Optional[threading.Event] = None,
    ) -> RunResult:
        """
        Export every requested table.

        Args:
            requests: Tables to export, at least one
            cancel_event: External cancellation signal (default: the coordinator's own)

        Returns:
            RunResult with one outcome per request, in request order

        Raises:
            UsageError: If the request list is empty, no backend matches the
                configured kind, or two requests share an output file
        """
        if not requests:
            raise UsageError("At least one table must be given")

        if cancel_event is not None:
            self.cancel_event = cancel_event

        exporter = self._create_exporter()
        run_timestamp = datetime.now(timezone.utc)
        self._check_collisions(exporter, requests, run_timestamp)

        # Workers only write files into it, they never create it
        self.options.output_directory.mkdir(parents=True, exist_ok=True)

        self.logger.info(
            "Starting export of %d tables using %d workers",
            len(requests),
            self.max_workers,
        )

        outcomes: List[Optional[ExportOutcome]] = [None] * len(requests)

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="export"
        ) as executor:
            future_to_index: Dict[Future, int] = {
                executor.submit(
                    exporter.export, request, self.cancel_event, run_timestamp
                ): index
                for index, request in enumerate(requests)
            }
            self._collect(future_to_index, requests, outcomes)

        result = RunResult(outcomes=tuple(outcomes))  # type: ignore[arg-type]
        self._log_summary(result)
        return result

    def _collect(
        self,
        future_to_index: Dict[Future, int],
        requests: Sequence[ExportRequest],
        outcomes: List[Optional[ExportOutcome]],
    ) -> None:
        pending = set(future_to_index)
        while pending:
            try:
                for future in as_completed(pending):
                    pending.discard(future)
                    index = future_to_index[future]
                    outcomes[index] = self._outcome_of(future, requests[index])
            except KeyboardInterrupt:
                self.logger.warning(
                    "Interrupted, cancelling %d remaining table exports", len(pending)
                )
                self.cancel()

    def _outcome_of(self, future: Future, request: ExportRequest) -> ExportOutcome:
        try:
            return future.result()
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.error(
                "Unexpected error during export of table %s: %s",
                request.table_name,
                exc,
                exc_info=True,
            )
            return ExportOutcome(
                table_name=request.table_name,
                file_path=self.options.output_directory,
                status=ExportStatus.FAILED,
                error_detail=str(exc),
            )

    def _log_summary(self, result: RunResult) -> None:
        level = logging.INFO
        if result.overall_status != RunStatus.SUCCESS:
            level = logging.ERROR
        self.logger.log(
            level,
            "Export completed: %d/%d tables successful, %d skipped, %d failed (%s)",
            len(result.succeeded),
            len(result.outcomes),
            len(result.skipped),
            len(result.failed),
            result.overall_status.value,
        )
        for outcome in result.failed:
            self.logger.error("  - %s: %s", outcome.table_name, outcome.error_detail)
