"""
tests/conftest.py — Proveedor DFSR falso para los tests.

FakeProvider responde con datos en memoria; cualquier valor que sea una
excepción se levanta en vez de devolverse (simula proveedor caído).
"""
from __future__ import annotations

import pytest

from dfsr_monitoring.provider.base import Connection, FolderState, ProviderError, ReplicatedFolder


def no_backlog(folder: str) -> str:
    return f'No backlog for the replicated folder named "{folder}"'


def backlog_text(folder: str, count: int) -> str:
    return f'The replicated folder has a backlog of files. Replicated folder: "{folder}". Count: {count}'


class FakeProvider:
    def __init__(self, *, folders=None, groups=None, connections=None, backlogs=None,
                 services=None, event=None, folder_states=None):
        self.folders = folders if folders is not None else []
        self.groups = groups or {}
        self.connections = connections or {}
        self.backlogs = backlogs or {}
        self.services = services or {}
        self.event = event
        self.folder_states = folder_states if folder_states is not None else []
        self.calls = []

    @staticmethod
    def _value(v):
        if isinstance(v, Exception):
            raise v
        return v

    def list_replicated_folders(self, local_node):
        self.calls.append(("list_replicated_folders", local_node))
        return self._value(self.folders)

    def get_group_for_folder(self, folder_name):
        self.calls.append(("get_group_for_folder", folder_name))
        if folder_name not in self.groups:
            raise ProviderError(f"unknown folder {folder_name}")
        return self._value(self.groups[folder_name])

    def list_connections(self, group_name):
        self.calls.append(("list_connections", group_name))
        return self._value(self.connections.get(group_name, []))

    def get_backlog(self, group_name, folder_name, source_computer, destination_computer):
        self.calls.append(("get_backlog", group_name, folder_name, source_computer, destination_computer))
        return self._value(self.backlogs[folder_name])

    def get_service_status(self, service_name):
        self.calls.append(("get_service_status", service_name))
        return self._value(self.services[service_name])

    def query_critical_events(self, log_name, since, levels, event_ids):
        self.calls.append(("query_critical_events", log_name, since, tuple(levels), tuple(event_ids)))
        return self._value(self.event)

    def query_folder_states(self):
        self.calls.append(("query_folder_states",))
        return self._value(self.folder_states)


@pytest.fixture
def healthy_provider():
    return FakeProvider(
        folders=[
            ReplicatedFolder("Data", r"D:\Shares\Data", "RG-Files"),
            ReplicatedFolder("Profiles", r"D:\Shares\Profiles", "RG-Files"),
        ],
        groups={"Data": "RG-Files", "Profiles": "RG-Files"},
        connections={
            "RG-Files": [
                Connection("FS02", "FS01"),
                Connection("FS01", "FS02"),
            ],
        },
        backlogs={"Data": no_backlog("Data"), "Profiles": backlog_text("Profiles", 12)},
        services={"DFSR": True, "WinRM": True},
        event=None,
        folder_states=[FolderState("Data", 4), FolderState("Profiles", 4)],
    )
