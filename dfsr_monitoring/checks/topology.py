"""
checks/topology.py

Resuelve carpeta replicada -> grupo + conexión saliente de este nodo.

Si el proveedor falla (o no hay conexión saliente) NO se levanta
excepción: se devuelve FolderTopology con connection_warning=True.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..provider.base import ReplicationProvider

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FolderTopology:
    group: str
    source_computer: str = ""
    destination_computer: str = ""
    connection_warning: bool = False
    reason: str = ""

    @classmethod
    def unconfirmed(cls, group: str, reason: str) -> "FolderTopology":
        return cls(group=group, connection_warning=True, reason=reason)


def resolve_topology(provider: ReplicationProvider, folder_name: str, local_node: str) -> FolderTopology:
    group = ""
    try:
        group = provider.get_group_for_folder(folder_name)
        connections = provider.list_connections(group)
    except Exception as e:
        log.warning(f"TOPOLOGY_FAIL | folder={folder_name} group={group or '?'} err={e}")
        return FolderTopology.unconfirmed(group, str(e))

    node = local_node.strip().lower()
    for conn in connections:
        if conn.source_computer.strip().lower() == node:
            return FolderTopology(
                group=group,
                source_computer=conn.source_computer,
                destination_computer=conn.destination_computer,
            )

    reason = f"no outbound connection from {local_node} in group {group}"
    log.warning(f"TOPOLOGY_FAIL | folder={folder_name} group={group} err={reason}")
    return FolderTopology.unconfirmed(group, reason)
