"""
staging_quota.py

Recomendación de staging quota por carpeta replicada.

Regla DFSR: la quota de staging tiene que alcanzar al menos para los
32 archivos más grandes de la carpeta. Sumamos esos tamaños y truncamos
a MB enteros.

No tiene umbrales ni status: es solo un reporte.
"""

from __future__ import annotations

import heapq
import os
from dataclasses import dataclass
from typing import Callable, Iterable, List

from .config import CHECKS, SERVERS
from .main import setup_logging
from .provider.base import ReplicatedFolder
from .provider.powershell import PowerShellProvider

LARGEST_FILES = 32
MEGABYTE = 1024 * 1024

SizeSource = Callable[[str, int], List[int]]


@dataclass(frozen=True)
class StagingQuota:
    folder_name: str
    content_path: str
    total_bytes: int
    quota_mb: int


def largest_file_sizes(path: str, count: int = LARGEST_FILES) -> List[int]:
    def sizes():
        for root, _dirs, files in os.walk(path):
            for name in files:
                try:
                    yield os.path.getsize(os.path.join(root, name))
                except OSError:
                    continue

    return heapq.nlargest(count, sizes())


def recommend_quota_mb(sizes: Iterable[int]) -> int:
    return sum(sizes) // MEGABYTE


def estimate_staging_quotas(folders: Iterable[ReplicatedFolder], size_source: SizeSource = largest_file_sizes,
                            count: int = LARGEST_FILES) -> List[StagingQuota]:
    quotas = []
    for folder in folders:
        sizes = size_source(folder.content_path, count)
        total = sum(sizes)
        quotas.append(StagingQuota(
            folder_name=folder.folder_name,
            content_path=folder.content_path,
            total_bytes=total,
            quota_mb=recommend_quota_mb(sizes),
        ))
    return quotas


def main():
    log = setup_logging("output/logs")

    seen = set()
    for cfg in CHECKS.values():
        server_name = cfg["server"]
        ssh_cfg = SERVERS.get(server_name)
        if not ssh_cfg or server_name in seen:
            continue
        seen.add(server_name)

        provider = PowerShellProvider(ssh_cfg)
        try:
            folders = provider.list_replicated_folders(ssh_cfg["node"])
            quotas = estimate_staging_quotas(folders, provider.largest_file_sizes)
        except Exception as e:
            log.error(f"STAGING_EXC | server={server_name} err={e}")
            print(f"- [{server_name}] ERROR: {e}")
            continue

        print(f"[+] {ssh_cfg.get('label', server_name)}")
        for q in quotas:
            log.info(f"STAGING_QUOTA | server={server_name} folder={q.folder_name} quota_mb={q.quota_mb}")
            print(f"- {q.folder_name} ({q.content_path}) -> staging quota recomendada: {q.quota_mb} MB")


if __name__ == "__main__":
    main()
