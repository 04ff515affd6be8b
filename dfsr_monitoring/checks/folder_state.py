"""
checks/folder_state.py

Estado agregado de TODAS las carpetas que expone DFSR (WMI
DfsrReplicatedFolderInfo), no solo las configuradas en este nodo.

Estados en curso o nominales se consideran sanos; cualquier estado
fuera de healthy_states (por defecto solo el 5 = In Error) -> WARNING.
"""

from __future__ import annotations

import logging
from typing import Collection, Union

from ..provider.base import ReplicationProvider
from .base import CheckResult, Status

log = logging.getLogger(__name__)

CHECK_NAME = "DFSR Folder States"

StateValue = Union[int, str]


def _normalize(state) -> StateValue:
    if isinstance(state, str):
        s = state.strip()
        return int(s) if s.isdigit() else s.upper()
    return state


def check_folder_states(provider: ReplicationProvider, healthy_states: Collection[StateValue]) -> CheckResult:
    healthy = {_normalize(s) for s in healthy_states}

    try:
        folders = provider.query_folder_states()
    except Exception as e:
        log.warning(f"FOLDER_STATES_FAIL | err={e}")
        return CheckResult(
            name=CHECK_NAME,
            status=Status.CRITICAL,
            message=f"Could not query DFS Replication folder states: {e}",
        )

    offending = [f.folder_name for f in folders if _normalize(f.state) not in healthy]
    metrics = {"folders_total": float(len(folders)), "folders_in_error": float(len(offending))}

    if offending:
        log.warning(f"FOLDER_STATES_WARN | folders={','.join(offending)}")
        return CheckResult(
            name=CHECK_NAME,
            status=Status.WARNING,
            message="Replicated folders in error state: " + ", ".join(offending),
            metrics=metrics,
            details={"folders": offending},
        )

    return CheckResult(
        name=CHECK_NAME,
        status=Status.OK,
        message=f"All {len(folders)} replicated folder(s) are in a healthy state.",
        metrics=metrics,
    )
