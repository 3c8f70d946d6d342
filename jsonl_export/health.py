"""
Preflight health checks run before an export.
Verifies that the database answers and the output directory is writable.
"""

import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import psutil

from .backends import Backend
from .models import ExportOptions


class HealthStatus(Enum):
    """Health check status enumeration."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheckResult:
    """Result of a health check operation."""

    name: str
    status: HealthStatus
    message: str
    duration_ms: float
    timestamp: datetime
    details: Optional[Dict[str, Any]] = None


class HealthChecker:
    """Runs database and file system checks for an export run."""

    low_space_gb = 5.0
    critical_space_gb = 1.0

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def check_database_connection(
        self, backend: Backend, options: ExportOptions
    ) -> HealthCheckResult:
        """
        Open a connection and run the backend's probe query.

        Args:
            backend: Backend matching ``options.backend_kind``
            options: Export options holding the connection string

        Returns:
            HealthCheckResult with connection status
        """
        start_time = time.time()
        connection = None
        try:
            connection = backend.connect(options.connection_string, options)
            cursor = connection.cursor()
            cursor.execute(backend.get_health_check_query())
            row = cursor.fetchone()
            cursor.close()
            duration_ms = (time.time() - start_time) * 1000

            if row and row[0] == 1:
                return HealthCheckResult(
                    name="database_connection",
                    status=HealthStatus.HEALTHY,
                    message="Database connection successful",
                    duration_ms=duration_ms,
                    timestamp=datetime.now(),
                    details={
                        "backend": backend.kind.value,
                        "response_time_ms": round(duration_ms, 2),
                    },
                )
            return HealthCheckResult(
                name="database_connection",
                status=HealthStatus.UNHEALTHY,
                message="Database query returned unexpected result",
                duration_ms=duration_ms,
                timestamp=datetime.now(),
            )
        except Exception as e:  # pylint: disable=broad-except
            error = backend.to_backend_error(e)
            return HealthCheckResult(
                name="database_connection",
                status=HealthStatus.UNHEALTHY,
                message=f"Database connection failed: {error}",
                duration_ms=(time.time() - start_time) * 1000,
                timestamp=datetime.now(),
                details={"error_code": error.code, "error_message": error.message},
            )
        finally:
            if connection is not None:
                try:
                    connection.close()
                except Exception as e:  # pylint: disable=broad-except
                    self.logger.warning("Failed to close probe connection: %s", e)

    def check_file_system(self, path: str) -> HealthCheckResult:
        """
        Check that the output directory is writable and has free space.

        Args:
            path: Output directory, created if missing

        Returns:
            HealthCheckResult with file system status
        """
        start_time = time.time()

        try:
            os.makedirs(path, exist_ok=True)

            test_file = os.path.join(path, f".health_check_{os.getpid()}_{int(time.time())}")
            with open(test_file, "w", encoding="utf-8") as f:
                f.write("health_check")
            os.remove(test_file)

            usage = psutil.disk_usage(path)
            free_space_gb = usage.free / (1024**3)
            duration_ms = (time.time() - start_time) * 1000

            if free_space_gb < self.critical_space_gb:
                status = HealthStatus.UNHEALTHY
                message = f"Critical: Low disk space ({free_space_gb:.2f} GB free)"
            elif free_space_gb < self.low_space_gb:
                status = HealthStatus.DEGRADED
                message = f"Warning: Low disk space ({free_space_gb:.2f} GB free)"
            else:
                status = HealthStatus.HEALTHY
                message = f"File system accessible ({free_space_gb:.2f} GB free)"

            return HealthCheckResult(
                name="file_system",
                status=status,
                message=message,
                duration_ms=duration_ms,
                timestamp=datetime.now(),
                details={
                    "path": path,
                    "free_space_gb": round(free_space_gb, 2),
                    "total_space_gb": round(usage.total / (1024**3), 2),
                    "usage_percent": round(usage.percent, 2),
                },
            )

        except PermissionError:
            return HealthCheckResult(
                name="file_system",
                status=HealthStatus.UNHEALTHY,
                message=f"Permission denied accessing path: {path}",
                duration_ms=(time.time() - start_time) * 1000,
                timestamp=datetime.now(),
                details={"error": "Permission denied"},
            )
        except OSError as e:
            return HealthCheckResult(
                name="file_system",
                status=HealthStatus.UNHEALTHY,
                message=f"File system check failed: {e}",
                duration_ms=(time.time() - start_time) * 1000,
                timestamp=datetime.now(),
                details={"error": str(e)},
            )

    def run_all_checks(
        self,
        options: ExportOptions,
        backend: Optional[Backend] = None,
    ) -> Tuple[Dict[str, HealthCheckResult], HealthStatus]:
        """
        Run the file system check and, given a backend, the database check.

        Returns:
            Tuple of (health check results, overall status)
        """
        results: Dict[str, HealthCheckResult] = {
            "file_system": self.check_file_system(str(options.output_directory))
        }
        if backend is not None:
            results["database"] = self.check_database_connection(backend, options)

        overall_status = self._calculate_overall_status(results)
        self._log_health_results(results, overall_status)
        return results, overall_status

    def _calculate_overall_status(
        self, results: Dict[str, HealthCheckResult]
    ) -> HealthStatus:
        statuses = [result.status for result in results.values()]
        if HealthStatus.UNHEALTHY in statuses:
            return HealthStatus.UNHEALTHY
        if HealthStatus.DEGRADED in statuses:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    def _log_health_results(
        self, results: Dict[str, HealthCheckResult], overall_status: HealthStatus
    ) -> None:
        self.logger.info(
            "Health check completed - Overall status: %s", overall_status.value
        )
        for name, result in results.items():
            log_level = logging.INFO
            if result.status == HealthStatus.UNHEALTHY:
                log_level = logging.ERROR
            elif result.status == HealthStatus.DEGRADED:
                log_level = logging.WARNING
            self.logger.log(
                log_level,
                "Health check '%s': %s - %s (%.2fms)",
                name,
                result.status.value,
                result.message,
                result.duration_ms,
            )
