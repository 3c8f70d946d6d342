"""Classification of backend errors into skippable and fatal."""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from .models import BackendKind

# ORA-00942: table or view does not exist
# ER_NO_SUCH_TABLE (1146): table doesn't exist
DEFAULT_SOFT_FAIL_CODES: Dict[BackendKind, FrozenSet[int]] = {
    BackendKind.ORACLE: frozenset({942}),
    BackendKind.MYSQL: frozenset({1146}),
}


class Classification(Enum):
    SKIPPABLE = "skippable"
    FATAL = "fatal"


class SoftFailPolicy:
    """Read-only table of error codes that mean "object not found"."""

    def __init__(self, codes: Optional[Mapping[BackendKind, Iterable[int]]] = None):
        source = DEFAULT_SOFT_FAIL_CODES if codes is None else codes
        self._codes: Dict[BackendKind, FrozenSet[int]] = {
            kind: frozenset(int(code) for code in values)
            for kind, values in source.items()
        }

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Iterable[int]]]) -> "SoftFailPolicy":
        """
        Build a policy from a ``{backend name: [codes]}`` mapping.

        Backends listed in the mapping replace their default codes; the others
        keep the defaults.
        """
        codes: Dict[BackendKind, Iterable[int]] = dict(DEFAULT_SOFT_FAIL_CODES)
        for name, values in (config or {}).items():
            codes[BackendKind.parse(name)] = values or ()
        return cls(codes)

    def codes_for(self, kind: BackendKind) -> FrozenSet[int]:
        return self._codes.get(kind, frozenset())

    def classify(self, kind: Optional[BackendKind], code: Optional[int]) -> Classification:
        if kind is None or code is None:
            return Classification.FATAL
        if code in self.codes_for(kind):
            return Classification.SKIPPABLE
        return Classification.FATAL
