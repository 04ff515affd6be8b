from __future__ import annotations

from conftest import FakeProvider
from dfsr_monitoring.checks.topology import FolderTopology, resolve_topology
from dfsr_monitoring.provider.base import Connection, ProviderError


def test_outbound_connection_of_local_node_is_selected(healthy_provider):
    topo = resolve_topology(healthy_provider, "Data", "FS01")
    assert topo == FolderTopology(group="RG-Files", source_computer="FS01", destination_computer="FS02")
    assert topo.connection_warning is False


def test_node_match_is_case_insensitive(healthy_provider):
    topo = resolve_topology(healthy_provider, "Data", "fs01")
    assert topo.source_computer == "FS01"


def test_connection_lookup_failure_becomes_warning():
    provider = FakeProvider(
        groups={"Data": "RG-Files"},
        connections={"RG-Files": ProviderError("RPC server is unavailable")},
    )
    topo = resolve_topology(provider, "Data", "FS01")
    assert topo.connection_warning is True
    assert topo.group == "RG-Files"
    assert topo.source_computer == "" and topo.destination_computer == ""
    assert "RPC" in topo.reason


def test_group_lookup_failure_becomes_warning():
    topo = resolve_topology(FakeProvider(), "Missing", "FS01")
    assert topo.connection_warning is True
    assert topo.group == ""


def test_no_outbound_connection_is_a_warning():
    provider = FakeProvider(
        groups={"Data": "RG-Files"},
        connections={"RG-Files": [Connection("FS02", "FS01")]},
    )
    topo = resolve_topology(provider, "Data", "FS01")
    assert topo.connection_warning is True
    assert "no outbound connection" in topo.reason
