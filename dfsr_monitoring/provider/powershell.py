"""
provider/powershell.py

Proveedor DFSR vía SSH + PowerShell:
- Conecta al miembro DFSR (OpenSSH de Windows) con user/pass o private key
- Ejecuta cmdlets DFSR con powershell -EncodedCommand (sin problemas de quoting)
- Consultas estructuradas con ConvertTo-Json, backlog con el stream verbose
- Errores -> ProviderError

Importante:
- La conexión SSH SIEMPRE se cierra
- No se cuelga: timeouts + lectura por chunks
- Sin reintentos por defecto (tries=1): el scheduler externo vuelve a correr
"""

from __future__ import annotations

import base64
import datetime as dt
import json
import socket
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import paramiko

from .base import (
    Connection,
    CriticalEvent,
    FolderState,
    ProviderError,
    ReplicatedFolder,
)

PS_PREAMBLE = "$ErrorActionPreference = 'Stop'; $ProgressPreference = 'SilentlyContinue'; "


def ps_quote(value: str) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def encode_command(script: str) -> str:
    return base64.b64encode((PS_PREAMBLE + script).encode("utf-16-le")).decode("ascii")


def load_private_key(key_path: str) -> paramiko.PKey:
    last_err = None
    for cls in (paramiko.RSAKey, paramiko.Ed25519Key, paramiko.ECDSAKey):
        try:
            return cls.from_private_key_file(key_path)
        except Exception as e:
            last_err = e
    raise ProviderError(f"Could not load private key {key_path}: {last_err}")


def _read_channel(stdout, stderr, *, channel_timeout=20, read_timeout=120) -> Tuple[str, str, int]:
    ch = stdout.channel
    ch.settimeout(channel_timeout)

    out_chunks: List[bytes] = []
    err_chunks: List[bytes] = []
    start = time.time()

    while True:
        if time.time() - start > read_timeout:
            try:
                ch.close()
            except Exception:
                pass
            raise TimeoutError(f"Timeout reading PowerShell output (>{read_timeout}s)")

        try:
            if ch.recv_ready():
                out_chunks.append(ch.recv(4096))
            if ch.recv_stderr_ready():
                err_chunks.append(ch.recv_stderr(4096))
            if ch.exit_status_ready():
                break
            time.sleep(0.1)
        except socket.timeout:
            pass

    # lo que haya quedado en el buffer después del exit status
    while ch.recv_ready():
        out_chunks.append(ch.recv(4096))
    while ch.recv_stderr_ready():
        err_chunks.append(ch.recv_stderr(4096))

    exit_code = ch.recv_exit_status()
    out = b"".join(out_chunks).decode("utf-8", errors="replace")
    err = b"".join(err_chunks).decode("utf-8", errors="replace")
    return out, err, exit_code


def _as_list(payload: Any) -> List[Dict[str, Any]]:
    # ConvertTo-Json devuelve un objeto suelto cuando hay un solo resultado
    if payload is None:
        return []
    if isinstance(payload, dict):
        return [payload]
    return list(payload)


class PowerShellProvider:
    def __init__(self, ssh_cfg: dict, *, connect_timeout=10, channel_timeout=20,
                 read_timeout=120, tries=1):
        self.ssh_cfg = ssh_cfg
        self.connect_timeout = connect_timeout
        self.channel_timeout = channel_timeout
        self.read_timeout = read_timeout
        self.tries = max(1, tries)

    # -----------------------------------------------------------------
    # Transporte
    # -----------------------------------------------------------------

    def _connect(self) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        auth: Dict[str, Any] = {}
        if self.ssh_cfg.get("key_path"):
            auth["pkey"] = load_private_key(self.ssh_cfg["key_path"])
        else:
            auth["password"] = self.ssh_cfg.get("password", "")

        client.connect(
            hostname=self.ssh_cfg["host"],
            port=self.ssh_cfg.get("port", 22),
            username=self.ssh_cfg["user"],
            timeout=self.connect_timeout,
            banner_timeout=self.connect_timeout,
            auth_timeout=self.connect_timeout,
            look_for_keys=False,
            allow_agent=False,
            **auth,
        )
        return client

    def run_script(self, script: str) -> str:
        remote_cmd = f"powershell.exe -NoProfile -NonInteractive -EncodedCommand {encode_command(script)}"
        last_err: Optional[Exception] = None

        for attempt in range(1, self.tries + 1):
            client = None
            try:
                client = self._connect()
                _stdin, stdout, stderr = client.exec_command(remote_cmd, get_pty=False)
                out, err, exit_code = _read_channel(
                    stdout, stderr,
                    channel_timeout=self.channel_timeout,
                    read_timeout=self.read_timeout,
                )
                if exit_code != 0:
                    raise ProviderError(
                        f"PowerShell exited with {exit_code} on {self.ssh_cfg['host']}: {err.strip() or out.strip()}"
                    )
                return out

            except ProviderError:
                raise
            except Exception as e:
                last_err = e
                if attempt < self.tries:
                    time.sleep(1.5 * attempt)

            finally:
                if client is not None:
                    try:
                        client.close()
                    except Exception:
                        pass

        raise ProviderError(f"SSH to {self.ssh_cfg['host']} failed after {self.tries} attempt(s): {last_err}")

    def run_json(self, script: str) -> List[Dict[str, Any]]:
        out = self.run_script(f"{script} | ConvertTo-Json -Compress").strip()
        if not out:
            return []
        try:
            return _as_list(json.loads(out))
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from PowerShell: {e}") from e

    # -----------------------------------------------------------------
    # ReplicationProvider
    # -----------------------------------------------------------------

    def list_replicated_folders(self, local_node: str) -> List[ReplicatedFolder]:
        rows = self.run_json(
            f"Get-DfsrMembership -ComputerName {ps_quote(local_node)} | "
            "Select-Object FolderName, ContentPath, GroupName"
        )
        return [
            ReplicatedFolder(
                folder_name=r.get("FolderName") or "",
                content_path=r.get("ContentPath") or "",
                group_name=r.get("GroupName") or "",
            )
            for r in rows
        ]

    def get_group_for_folder(self, folder_name: str) -> str:
        out = self.run_script(
            f"Get-DfsReplicatedFolder -FolderName {ps_quote(folder_name)} | "
            "Select-Object -First 1 -ExpandProperty GroupName"
        ).strip()
        if not out:
            raise ProviderError(f"No replication group found for folder '{folder_name}'")
        return out.splitlines()[0].strip()

    def list_connections(self, group_name: str) -> List[Connection]:
        rows = self.run_json(
            f"Get-DfsrConnection -GroupName {ps_quote(group_name)} | "
            "Select-Object SourceComputerName, DestinationComputerName"
        )
        return [
            Connection(
                source_computer=r.get("SourceComputerName") or "",
                destination_computer=r.get("DestinationComputerName") or "",
            )
            for r in rows
        ]

    def get_backlog(self, group_name: str, folder_name: str,
                    source_computer: str, destination_computer: str) -> str:
        return self.run_script(
            f"Get-DfsrBacklog -GroupName {ps_quote(group_name)} "
            f"-FolderName {ps_quote(folder_name)} "
            f"-SourceComputerName {ps_quote(source_computer)} "
            f"-DestinationComputerName {ps_quote(destination_computer)} -Verbose 4>&1 | "
            "Where-Object { $_ -is [System.Management.Automation.VerboseRecord] } | "
            "ForEach-Object { $_.Message }"
        )

    def get_service_status(self, service_name: str) -> bool:
        # servicio no instalado -> no corriendo (severidad propia del servicio)
        out = self.run_script(
            f"$svc = Get-Service -Name {ps_quote(service_name)} -ErrorAction SilentlyContinue; "
            "if ($svc) { $svc.Status.ToString() } else { 'NotFound' }"
        )
        return out.strip().lower() == "running"

    def query_critical_events(self, log_name: str, since: dt.datetime,
                              levels: Sequence[int], event_ids: Sequence[int]) -> Optional[CriticalEvent]:
        since_utc = since.astimezone(dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        rows = self.run_json(
            "$filter = @{ "
            f"LogName = {ps_quote(log_name)}; "
            f"Level = {','.join(str(int(x)) for x in levels)}; "
            f"Id = {','.join(str(int(x)) for x in event_ids)}; "
            f"StartTime = [datetime]::Parse({ps_quote(since_utc)}) }}; "
            # solo "no hay eventos" es un resultado vacío; log inexistente o sin acceso -> error
            "$rows = @(); "
            "try { $rows = Get-WinEvent -FilterHashtable $filter -MaxEvents 1 -ErrorAction Stop | "
            "Select-Object Id, @{ n = 'TimeCreated'; e = { $_.TimeCreated.ToString('o') } }, Message } "
            "catch { if ($_.FullyQualifiedErrorId -notlike 'NoMatchingEventsFound*') { throw } }; "
            "$rows"
        )
        if not rows:
            return None
        first = rows[0]
        return CriticalEvent(
            event_id=int(first.get("Id", 0)),
            time_created=first.get("TimeCreated") or "",
            message=(first.get("Message") or "").strip(),
        )

    def query_folder_states(self) -> List[FolderState]:
        rows = self.run_json(
            "Get-CimInstance -Namespace 'root\\MicrosoftDFS' -ClassName DfsrReplicatedFolderInfo | "
            "Select-Object ReplicatedFolderName, State"
        )
        return [
            FolderState(folder_name=r.get("ReplicatedFolderName") or "", state=r.get("State"))
            for r in rows
        ]

    # -----------------------------------------------------------------
    # Extra: tamaños para staging quota
    # -----------------------------------------------------------------

    def largest_file_sizes(self, path: str, count: int = 32) -> List[int]:
        out = self.run_script(
            f"Get-ChildItem -LiteralPath {ps_quote(path)} -Recurse -File -Force -ErrorAction SilentlyContinue | "
            f"Sort-Object Length -Descending | Select-Object -First {int(count)} -ExpandProperty Length"
        )
        sizes = []
        for line in out.splitlines():
            line = line.strip()
            if line.isdigit():
                sizes.append(int(line))
        return sizes
