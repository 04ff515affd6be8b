"""
config.py

Configuración central del proyecto.

- SERVERS: miembros DFSR por SSH (OpenSSH de Windows, key o password)
- CHECKS : sets de checks DFSR a ejecutar (umbrales de backlog, ventana de eventos)
- Constantes DFSR: estados sanos, eventos de "replicación detenida", severidad por servicio

Recomendación:
- Evitá hardcodear passwords. Usá variables de entorno.
  PowerShell:
    $env:DFSR_PASS="xxxx"
"""

import os

DFSR_PASS = os.environ.get("DFSR_PASS", "")

SERVERS = {
    "fs01": {
        "label": "FS01 (10.20.0.11)",
        "host": "10.20.0.11",
        "port": 22,
        "user": "svc-monitor",
        "password": DFSR_PASS,
        "node": "FS01",
    },
    "fs02": {
        "label": "FS02 (10.20.0.12)",
        "host": "10.20.0.12",
        "port": 22,
        "user": "svc-monitor",
        "password": DFSR_PASS,
        "node": "FS02",
    },
}

# Estados "en curso o nominales". Nombres de estado + códigos WMI
# DfsrReplicatedFolderInfo.State 0..4; el 5 (In Error) queda afuera.
HEALTHY_FOLDER_STATES = [
    "PROVISIONING",
    "CUSTOMIZING",
    "DELETING",
    "MAINTENANCE",
    "PROVISIONED",
    "CONNECTED",
    "ISCONNECTED",
    "AVAILABLE",
    "DISCONNECTED",
    0, 1, 2, 3, 4,
]

# 2104: error interno de base, 2212/2213: apagado inesperado,
# 4012: desconectado más de MaxOfflineTimeInDays
CRITICAL_EVENT_IDS = [2104, 2212, 2213, 4012]

# Severidad fija cuando el servicio NO está corriendo
SERVICE_SEVERITIES = {
    "DFSR": "CRITICAL",
    "WinRM": "WARNING",
}

CHECKS = {
    "dfsr_fs01": {
        "server": "fs01",
        "backlog_warn": 50,
        "backlog_crit": 200,
        "event_hours": 1,
    },
    "dfsr_fs02": {
        "server": "fs02",
        "backlog_warn": 50,
        "backlog_crit": 200,
        "event_hours": 1,
    },
}
