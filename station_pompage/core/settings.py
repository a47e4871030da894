"""Paramètres d'exécution lus depuis l'environnement (.env)."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from station_pompage.core.constants import DEFAULT_MONITOR_INTERVAL_MIN

load_dotenv()


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    return float(raw) if raw else None


@dataclass
class Settings:
    """Paramètres d'exécution.

    Attributes:
        http_timeout: Timeout HTTP (s); ``None`` = pas de timeout
        channels_file: Fichier JSON remplaçant le catalogue des canaux
        monitor_interval_min: Cadence de surveillance (minutes)
        email_mode: ``preview`` (journal uniquement) ou ``smtp``
        smtp_host: Serveur SMTP
        smtp_port: Port SMTP
        smtp_user: Utilisateur SMTP
        smtp_password: Mot de passe SMTP
        smtp_use_tls: STARTTLS avant authentification
        email_from: Expéditeur des alertes
        console_format: ``rich``, ``plain`` ou ``json``
    """

    http_timeout: Optional[float] = None
    channels_file: Optional[str] = None
    monitor_interval_min: float = DEFAULT_MONITOR_INTERVAL_MIN
    email_mode: str = "preview"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from: str = "alertes@station-pompage.local"
    console_format: str = "rich"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            http_timeout=_optional_float("STATION_HTTP_TIMEOUT"),
            channels_file=os.getenv("STATION_CHANNELS_FILE") or None,
            monitor_interval_min=float(os.getenv("MONITOR_INTERVAL_MIN", str(DEFAULT_MONITOR_INTERVAL_MIN))),
            email_mode=os.getenv("EMAIL_MODE", "preview").strip().lower(),
            smtp_host=os.getenv("SMTP_HOST", "localhost"),
            smtp_port=int(os.getenv("SMTP_PORT", "587")),
            smtp_user=os.getenv("SMTP_USER", ""),
            smtp_password=os.getenv("SMTP_PASSWORD", ""),
            smtp_use_tls=os.getenv("SMTP_USE_TLS", "1").strip().lower() not in {"0", "false", "no"},
            email_from=os.getenv("SMTP_FROM", "alertes@station-pompage.local"),
            console_format=os.getenv("CONSOLE_FORMAT", "rich"),
        )
