from __future__ import annotations

import datetime as dt
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request

from ..config import SERVERS

app = FastAPI(title="DFSR Grafana API")

# ----------------------------
# Paths del proyecto
# ----------------------------
# 1) Si existe variable de entorno DFSR_SNAPSHOT_DIR, la usamos.
# 2) Si no, output/snapshots relativo al directorio de trabajo (donde corre main).
BACKLOG_PREFIX = "DFSR Backlog - "


def snapshot_dir() -> Path:
    env_snap = os.environ.get("DFSR_SNAPSHOT_DIR", "").strip()
    if env_snap:
        return Path(env_snap).expanduser()
    return Path("output") / "snapshots"


# ----------------------------
# Helpers
# ----------------------------
def _latest_snapshot_file() -> Path:
    snap_dir = snapshot_dir()
    if not snap_dir.exists():
        raise HTTPException(status_code=404, detail=f"Snapshot dir does not exist: {snap_dir}")
    latest = snap_dir / "snapshot_latest.json"
    if not latest.exists():
        raise HTTPException(status_code=404, detail=f"{latest} does not exist")
    return latest


def _load_latest_snapshot() -> Dict[str, Any]:
    f = _latest_snapshot_file()
    return json.loads(f.read_text(encoding="utf-8"))


def _status_to_num(s: str) -> int:
    s = (s or "").upper()
    if s == "OK":
        return 0
    if s == "WARNING":
        return 1
    return 2  # CRITICAL o unknown


def _find_result(snapshot: Dict[str, Any], check_name: str, server: Optional[str] = None) -> Optional[Dict[str, Any]]:
    for r in snapshot.get("results", []):
        if r.get("name") == check_name and (server is None or r.get("server") == server):
            return r
    return None


def _backlog_results(snapshot: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [r for r in snapshot.get("results", []) if (r.get("name") or "").startswith(BACKLOG_PREFIX)]


def _server_label(server_key: str) -> str:
    if not server_key:
        return "unknown"
    s = SERVERS.get(server_key, {})
    return s.get("label") or server_key


def _snapshot_epoch_ms(snapshot: Dict[str, Any]) -> int:
    ts_iso = snapshot.get("timestamp") or ""
    if not ts_iso:
        return 0
    try:
        return int(dt.datetime.fromisoformat(ts_iso).timestamp() * 1000)
    except ValueError:
        return 0


# ----------------------------
# Endpoints requeridos por simpod-json-datasource
# ----------------------------
@app.get("/")
def root():
    # útil para debug rápido
    snap_file = _latest_snapshot_file()
    snap = _load_latest_snapshot()
    return {
        "status": "ok",
        "snap_file": str(snap_file),
        "snap_timestamp": snap.get("timestamp"),
        "global_status": snap.get("global_status"),
        "backlog_folders": len(_backlog_results(snap)),
    }


@app.post("/search")
def search(_: Any = None):
    # llena el dropdown "Metric"
    return [
        "checks_table",   # tabla: time/server/check/status/message
        "check_status",   # status_num global o por check (serie 1 punto)
        "backlog_count",  # backlog de una carpeta (requiere payload.folder)
        "backlog_table",  # tabla: server/folder/group/backlog/status
    ]


@app.post("/query")
async def query(request: Request):
    """
    Endpoint principal que consulta Grafana.

    Nos interesa "targets": [{ "target": "...", "payload": {...}}]
    """
    body = await request.json()
    targets = body.get("targets", [])

    snapshot = _load_latest_snapshot()
    ts_iso = snapshot.get("timestamp") or ""
    epoch_ms = _snapshot_epoch_ms(snapshot)

    out: List[Dict[str, Any]] = []

    for tgt in targets:
        metric = tgt.get("target")
        payload = tgt.get("payload") or {}
        check_name = payload.get("check")
        server = payload.get("server")

        if metric == "checks_table":
            rows = [
                [ts_iso, _server_label(r.get("server")), r.get("name"), r.get("status", "CRITICAL"), r.get("message")]
                for r in snapshot.get("results", [])
            ]
            out.append({
                "type": "table",
                "columns": [
                    {"text": "time"},
                    {"text": "server"},
                    {"text": "check"},
                    {"text": "status"},
                    {"text": "message"},
                ],
                "rows": rows,
            })

        # sin payload.check -> global, con payload.check -> ese check
        elif metric == "check_status":
            if check_name:
                r = _find_result(snapshot, check_name, server)
                datapoints = [[_status_to_num(r.get("status")), epoch_ms]] if r else []
                out.append({"target": f"{check_name}.status_num", "datapoints": datapoints})
            else:
                out.append({
                    "target": "global.status_num",
                    "datapoints": [[_status_to_num(snapshot.get("global_status")), epoch_ms]],
                })

        elif metric == "backlog_count":
            folder = payload.get("folder")
            if not folder:
                raise HTTPException(status_code=400, detail='Payload required: {"folder":"<replicated folder>"}')
            r = _find_result(snapshot, BACKLOG_PREFIX + folder, server)
            val = (r.get("metrics") or {}).get("backlog") if r else None
            # -1 = no se pudo calcular
            datapoints = [[val, epoch_ms]] if val is not None and val >= 0 else []
            out.append({"target": f"{folder}.backlog", "datapoints": datapoints})

        elif metric == "backlog_table":
            rows = []
            for r in _backlog_results(snapshot):
                metrics = r.get("metrics") or {}
                backlog = metrics.get("backlog")
                rows.append([
                    _server_label(r.get("server")),
                    r["name"][len(BACKLOG_PREFIX):],
                    (r.get("details") or {}).get("group", ""),
                    backlog if backlog is not None and backlog >= 0 else None,
                    r.get("status", "CRITICAL"),
                ])
            out.append({
                "type": "table",
                "columns": [
                    {"text": "Server", "type": "string"},
                    {"text": "Folder", "type": "string"},
                    {"text": "Group", "type": "string"},
                    {"text": "Backlog", "type": "number"},
                    {"text": "Status", "type": "string"},
                ],
                "rows": rows,
            })

        else:
            # métrica desconocida -> vacía
            out.append({"target": str(metric), "datapoints": []})

    return out
