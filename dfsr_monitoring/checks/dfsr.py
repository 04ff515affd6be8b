"""
checks/dfsr.py

Pasada completa de checks DFSR para un nodo:
1) Servicios (severidad fija por servicio)
2) Eventos críticos en la ventana de horas
3) Estado agregado de carpetas
4) Backlog por cada carpeta replicada local: topología -> backlog -> umbrales

Cada check devuelve su CheckResult; ninguna excepción cruza el límite
de un check (una carpeta caída no frena a las demás).
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List

from ..provider.base import ReplicationProvider
from .backlog import BacklogOutcome, evaluate_backlog, resolve_backlog
from .base import CheckResult, Status
from .folder_state import check_folder_states
from .services import DEFAULT_EVENT_IDS, check_critical_events, check_service
from .topology import resolve_topology

log = logging.getLogger(__name__)

FOLDERS_CHECK_NAME = "DFSR Replicated Folders"


def check_folder_backlog(provider: ReplicationProvider, folder_name: str, local_node: str,
                         warn: int, crit: int) -> CheckResult:
    topology = resolve_topology(provider, folder_name, local_node)
    if topology.connection_warning:
        return evaluate_backlog(folder_name, topology.group, BacklogOutcome.failed(topology.reason),
                                warn, crit, connection_warning=True)

    backlog = resolve_backlog(
        provider,
        topology.group,
        folder_name,
        topology.source_computer,
        topology.destination_computer,
    )
    result = evaluate_backlog(folder_name, topology.group, backlog, warn, crit)
    return replace(result, details={
        **result.details,
        "source_computer": topology.source_computer,
        "destination_computer": topology.destination_computer,
    })


def run(provider: ReplicationProvider, local_node: str, dfsr_cfg: dict) -> List[CheckResult]:
    warn = int(dfsr_cfg["backlog_warn"])
    crit = int(dfsr_cfg["backlog_crit"])

    results: List[CheckResult] = []

    for service_name, severity in dfsr_cfg["services"].items():
        results.append(check_service(provider, service_name, Status[severity]))

    results.append(check_critical_events(
        provider,
        hours=dfsr_cfg.get("event_hours", 1),
        event_ids=dfsr_cfg.get("event_ids", DEFAULT_EVENT_IDS),
    ))

    results.append(check_folder_states(provider, dfsr_cfg["healthy_states"]))

    try:
        folders = provider.list_replicated_folders(local_node)
    except Exception as e:
        log.warning(f"FOLDERS_FAIL | node={local_node} err={e}")
        results.append(CheckResult(
            name=FOLDERS_CHECK_NAME,
            status=Status.CRITICAL,
            message=f"Could not enumerate replicated folders on {local_node}: {e}",
        ))
        return results

    for folder in folders:
        results.append(check_folder_backlog(provider, folder.folder_name, local_node, warn, crit))

    return results
