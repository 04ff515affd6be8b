"""
checks/services.py

Checks independientes sobre el nodo DFSR:
- Servicio corriendo (DFSR -> CRITICAL si está parado, WinRM -> WARNING)
- Eventos críticos de "replicación detenida" en el log DFS Replication
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Optional, Sequence

from ..provider.base import ReplicationProvider
from .base import CheckResult, Status

log = logging.getLogger(__name__)

EVENT_LOG_NAME = "DFS Replication"
EVENT_CHECK_NAME = "DFSR Critical Events"

# 2 = Error, 3 = Warning
DEFAULT_EVENT_LEVELS = (2, 3)
DEFAULT_EVENT_IDS = (2104, 2212, 2213, 4012)


def check_service(provider: ReplicationProvider, service_name: str, severity: Status) -> CheckResult:
    name = f"Service - {service_name}"
    try:
        running = provider.get_service_status(service_name)
    except Exception as e:
        log.warning(f"SERVICE_FAIL | service={service_name} err={e}")
        return CheckResult(
            name=name,
            status=Status.CRITICAL,
            message=f"Could not query the status of service {service_name}: {e}",
        )

    if running:
        return CheckResult(name=name, status=Status.OK, message=f"Service {service_name} is running.")

    log.warning(f"SERVICE_DOWN | service={service_name} severity={severity.name}")
    return CheckResult(name=name, status=severity, message=f"Service {service_name} is not running.")


def check_critical_events(provider: ReplicationProvider, hours: float = 1,
                          event_ids: Sequence[int] = DEFAULT_EVENT_IDS,
                          levels: Sequence[int] = DEFAULT_EVENT_LEVELS,
                          log_name: str = EVENT_LOG_NAME,
                          now: Optional[dt.datetime] = None) -> CheckResult:
    now = now or dt.datetime.now(dt.timezone.utc)
    since = now - dt.timedelta(hours=hours)
    metrics = {"window_hours": float(hours)}

    try:
        event = provider.query_critical_events(log_name, since, levels, event_ids)
    except Exception as e:
        log.warning(f"EVENTS_FAIL | log={log_name} err={e}")
        return CheckResult(
            name=EVENT_CHECK_NAME,
            status=Status.CRITICAL,
            message=f"Could not query the '{log_name}' event log: {e}",
            metrics=metrics,
        )

    if event is None:
        return CheckResult(
            name=EVENT_CHECK_NAME,
            status=Status.OK,
            message=f"No critical DFS Replication events in the last {hours:g} hour(s).",
            metrics=metrics,
        )

    log.warning(f"EVENTS_FOUND | id={event.event_id} time={event.time_created}")
    return CheckResult(
        name=EVENT_CHECK_NAME,
        status=Status.CRITICAL,
        message=(f"DFS Replication stopped: event {event.event_id} logged at {event.time_created} "
                 f"(within the last {hours:g} hour(s))."),
        metrics=metrics,
        details={"event_id": event.event_id, "time_created": event.time_created, "event_message": event.message},
    )
