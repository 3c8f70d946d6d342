"""Error types shared across the export engine."""

from dataclasses import dataclass
from typing import Optional

from .models import BackendKind


class UsageError(ValueError):
    """Invalid invocation detected before any table export starts."""


@dataclass(frozen=True)
class BackendError:
    """A driver failure reduced to what the soft-fail policy needs."""

    backend_kind: Optional[BackendKind]
    code: Optional[int]
    message: str

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"[{self.code}] {self.message}"
