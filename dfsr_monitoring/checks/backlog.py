"""
checks/backlog.py

Check de backlog DFSR por carpeta replicada:
- Pide el backlog al proveedor (Get-DfsrBacklog -Verbose)
- Parsea el texto verbose: "No backlog ..." o "... Replicated folder: "X". Count: N"
- Compara contra umbrales warn / crit
- OK / WARNING / CRITICAL

Importante:
- Una falla del proveedor NO corta el batch: queda como BacklogOutcome con error
- El orden de evaluación ES la política (crit se evalúa antes que warn)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..provider.base import ReplicationProvider
from .base import CheckResult, Status

log = logging.getLogger(__name__)

CHECK_PREFIX = "DFSR Backlog - "

NO_BACKLOG_RE = re.compile(r"No backlog for the replicated folder named", re.IGNORECASE)


@dataclass(frozen=True)
class BacklogOutcome:
    count: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, count: int) -> "BacklogOutcome":
        return cls(count=count)

    @classmethod
    def failed(cls, reason: str) -> "BacklogOutcome":
        return cls(error=reason or "unknown error")

    @property
    def error_status(self) -> bool:
        return self.error is not None


def _count_re(folder_name: str) -> re.Pattern:
    return re.compile(
        r'Replicated folder:\s*"' + re.escape(folder_name) + r'"\.?\s*Count:\s*(?P<count>\d+)',
        re.IGNORECASE,
    )


def parse_backlog_output(text: str, folder_name: str) -> BacklogOutcome:
    if NO_BACKLOG_RE.search(text or ""):
        return BacklogOutcome.ok(0)

    m = _count_re(folder_name).search(text or "")
    if m:
        return BacklogOutcome.ok(int(m.group("count")))

    # devolver 0 acá escondería backlog real
    snippet = " ".join((text or "").split())[:200]
    return BacklogOutcome.failed(f"unparsable backlog output: {snippet or '(empty)'}")


def resolve_backlog(provider: ReplicationProvider, group: str, folder_name: str,
                    source_computer: str, destination_computer: str) -> BacklogOutcome:
    try:
        text = provider.get_backlog(group, folder_name, source_computer, destination_computer)
    except Exception as e:
        log.warning(f"BACKLOG_FAIL | folder={folder_name} group={group} err={e}")
        return BacklogOutcome.failed(str(e))

    outcome = parse_backlog_output(text, folder_name)
    if outcome.error_status:
        log.warning(f"BACKLOG_PARSE_FAIL | folder={folder_name} group={group} err={outcome.error}")
    return outcome


def evaluate_backlog(folder_name: str, group: str, backlog: BacklogOutcome, warn: int, crit: int,
                     connection_warning: bool = False) -> CheckResult:
    name = CHECK_PREFIX + folder_name
    count = backlog.count if backlog.count is not None else -1
    metrics = {"backlog": float(count), "backlog_warn": float(warn), "backlog_crit": float(crit)}

    if connection_warning:
        status = Status.CRITICAL
        message = (f"Could not confirm the replication topology for folder '{folder_name}' "
                   f"on this node; backlog was not checked.")
    elif backlog.error_status:
        status = Status.CRITICAL
        message = f"Backlog for folder '{folder_name}' could not be calculated ({backlog.error})."
    elif count >= crit:
        status = Status.CRITICAL
        message = (f"Backlog for folder '{folder_name}' in group '{group}' is {count}. "
                   f"Investigate urgently.")
    elif count >= warn:
        status = Status.WARNING
        message = f"Backlog for folder '{folder_name}' in group '{group}' is {count}. Investigate."
    elif count == 0:
        status = Status.OK
        message = f"Backlog for folder '{folder_name}' in group '{group}' is 0."
    else:
        status = Status.OK
        message = (f"Backlog for folder '{folder_name}' in group '{group}' is {count}, "
                   f"below the warning threshold of {warn}.")

    if status is not Status.OK:
        log.warning(f"BACKLOG_{status.name} | {message}")

    return CheckResult(name=name, status=status, message=message, metrics=metrics,
                       details={"group": group})
