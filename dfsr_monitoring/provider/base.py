"""
provider/base.py

Contrato del proveedor de datos de DFS Replication.

Los checks nunca hablan directo con DFSR: piden todo a un objeto que
cumpla ReplicationProvider. Cualquier falla del proveedor se levanta
como ProviderError (los checks la convierten en resultado).
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Union


class ProviderError(RuntimeError):
    pass


@dataclass(frozen=True)
class ReplicatedFolder:
    folder_name: str
    content_path: str
    group_name: str


@dataclass(frozen=True)
class Connection:
    source_computer: str
    destination_computer: str


@dataclass(frozen=True)
class CriticalEvent:
    event_id: int
    time_created: str
    message: str = ""


@dataclass(frozen=True)
class FolderState:
    folder_name: str
    state: Union[int, str]


class ReplicationProvider(Protocol):
    def list_replicated_folders(self, local_node: str) -> List[ReplicatedFolder]: ...

    def get_group_for_folder(self, folder_name: str) -> str: ...

    def list_connections(self, group_name: str) -> List[Connection]: ...

    def get_backlog(self, group_name: str, folder_name: str,
                    source_computer: str, destination_computer: str) -> str:
        """Devuelve el texto de diagnóstico (verbose) del cálculo de backlog."""
        ...

    def get_service_status(self, service_name: str) -> bool: ...

    def query_critical_events(self, log_name: str, since: dt.datetime,
                              levels: Sequence[int], event_ids: Sequence[int]) -> Optional[CriticalEvent]:
        """Primer evento que matchea en la ventana, o None."""
        ...

    def query_folder_states(self) -> List[FolderState]: ...
