from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterable


class Status(IntEnum):
    OK = 0
    WARNING = 1
    CRITICAL = 2


@dataclass(frozen=True)
class CheckResult:
    name: str
    status: Status
    message: str
    metrics: Dict[str, float] = field(default_factory=dict)
    details: Dict[str, Any] = field(default_factory=dict)

    # metrics/details son dicts: no hasheable
    __hash__ = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.name,
            "status_code": int(self.status),
            "message": self.message,
            "metrics": dict(self.metrics),
            "details": dict(self.details),
        }


def worst_status(results: Iterable[CheckResult]) -> Status:
    return max((r.status for r in results), default=Status.OK)
