"""
main.py

Runner principal del proyecto dfsr_monitoring.

- Lee SERVERS y CHECKS desde config.py
- Ejecuta la pasada de checks DFSR de cada set (servicios, eventos, estados, backlog)
- Guarda snapshot_latest.json
- Loggea cada ejecución a output/logs/dfsr_monitoring.log (rotativo)
- Exit code:
    0 = OK
    1 = WARNING
    2 = CRITICAL
"""

import json
import datetime as dt
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
import traceback
import time

from .config import CHECKS, CRITICAL_EVENT_IDS, HEALTHY_FOLDER_STATES, SERVERS, SERVICE_SEVERITIES

from .checks.base import CheckResult, Status, worst_status
from .checks.dfsr import run as run_dfsr
from .provider.powershell import PowerShellProvider


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def ensure_output_dirs(output_dirs: dict) -> None:
    Path(output_dirs["snapshots"]).mkdir(parents=True, exist_ok=True)
    Path(output_dirs["logs"]).mkdir(parents=True, exist_ok=True)


def setup_logging(log_dir: str) -> logging.Logger:
    logger = logging.getLogger("dfsr_monitoring")
    logger.setLevel(logging.INFO)

    # Evitar duplicar handlers si corrés main varias veces en la misma sesión
    if logger.handlers:
        return logger

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    log_path = Path(log_dir) / "dfsr_monitoring.log"

    fh = RotatingFileHandler(
        log_path,
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=5,
        encoding="utf-8",
    )
    fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    logger.addHandler(sh)

    return logger


def build_dfsr_cfg(cfg: dict) -> dict:
    return {
        "backlog_warn": cfg["backlog_warn"],
        "backlog_crit": cfg["backlog_crit"],
        "event_hours": cfg.get("event_hours", 1),
        "services": cfg.get("services", SERVICE_SEVERITIES),
        "event_ids": cfg.get("event_ids", CRITICAL_EVENT_IDS),
        "healthy_states": cfg.get("healthy_states", HEALTHY_FOLDER_STATES),
    }


def result_row(check_set: str, server_name: str, result: CheckResult) -> dict:
    row = result.as_dict()
    row.update({"check_set": check_set, "server": server_name})
    return row


def run_check_set(check_name: str, cfg: dict, servers: dict, log: logging.Logger,
                  provider_factory=None) -> list:
    server_name = cfg["server"]
    ssh_cfg = servers.get(server_name)

    if not ssh_cfg:
        msg = f"Server '{server_name}' is not defined in SERVERS"
        log.error(f"CHECK_FAIL | name={check_name} server={server_name} err={msg}")
        return [CheckResult(name=check_name, status=Status.CRITICAL, message=msg)]

    dfsr_cfg = build_dfsr_cfg(cfg)
    if dfsr_cfg["backlog_warn"] > dfsr_cfg["backlog_crit"]:
        log.warning(
            f"CONFIG_WARN | name={check_name} backlog_warn={dfsr_cfg['backlog_warn']} "
            f"> backlog_crit={dfsr_cfg['backlog_crit']} (critical wins)"
        )

    start = time.time()
    try:
        provider = (provider_factory or PowerShellProvider)(ssh_cfg)
        results = run_dfsr(provider, ssh_cfg.get("node", server_name), dfsr_cfg)
    except Exception as e:
        elapsed = round(time.time() - start, 2)
        log.error(f"CHECK_EXC | name={check_name} server={server_name} dur_sec={elapsed} err={e}")
        log.debug(traceback.format_exc())
        return [CheckResult(
            name=check_name,
            status=Status.CRITICAL,
            message=f"Check set failed unexpectedly: {e}",
            details={"duration_sec": elapsed},
        )]

    elapsed = round(time.time() - start, 2)
    for r in results:
        log.info(
            f"CHECK_DONE | name={r.name} set={check_name} server={server_name} "
            f"status={r.status.name} msg={r.message}"
        )
    log.info(f"SET_DONE | name={check_name} server={server_name} checks={len(results)} dur_sec={elapsed}")
    return results


# ---------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------

def main():
    output_dirs = {
        "snapshots": "output/snapshots",
        "logs": "output/logs",
    }
    ensure_output_dirs(output_dirs)
    log = setup_logging(output_dirs["logs"])

    run_ts = dt.datetime.now().isoformat()
    log.info(f"RUN_START | ts={run_ts}")

    rows = []
    all_results = []

    for check_name, cfg in CHECKS.items():
        results = run_check_set(check_name, cfg, SERVERS, log)
        all_results.extend(results)
        rows.extend(result_row(check_name, cfg["server"], r) for r in results)

    global_status = worst_status(all_results)

    snapshot = {
        "timestamp": dt.datetime.now().isoformat(),
        "global_status": global_status.name,
        "results": rows,
    }

    snap_file = Path(output_dirs["snapshots"]) / "snapshot_latest.json"
    snap_file.write_text(json.dumps(snapshot, indent=2, ensure_ascii=False), encoding="utf-8")

    log.info(f"RUN_END | global_status={global_status.name} snapshot={snap_file}")

    print(f"[+] Snapshot guardado: {snap_file}")
    print(f"[+] Global status    : {global_status.name}\n")
    for r in rows:
        print(f"- {r['name']} [{r['server']}] -> {r['status']}  {r['message']}")

    raise SystemExit(int(global_status))


if __name__ == "__main__":
    main()
