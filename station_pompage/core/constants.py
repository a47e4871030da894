"""Constantes globales: fenêtres de requête, cadence de surveillance et libellés."""

import os

from dotenv import load_dotenv

load_dotenv()

# Source ThingSpeak
THINGSPEAK_BASE_URL = os.getenv("THINGSPEAK_BASE_URL", "https://api.thingspeak.com").rstrip("/")
# Préfixe de proxy optionnel (ex: "https://api.allorigins.win/raw?url=")
THINGSPEAK_PROXY_URL = os.getenv("THINGSPEAK_PROXY_URL", "")
# Fuseau horaire des stations (les dates journalières sont locales)
STATION_TIMEZONE = os.getenv("STATION_TIMEZONE", "Africa/Tunis")

# Limite par requête de l'API (jours)
MAX_WINDOW_DAYS = 7

# Nombre maximal de champs par canal ThingSpeak
MAX_FIELDS = 8
FIELD_KEYS = tuple(f"field{i}" for i in range(1, MAX_FIELDS + 1))

# Cadence de surveillance des alertes (minutes)
DEFAULT_MONITOR_INTERVAL_MIN = 2

# Conversion du niveau brut (cm) en mètres
CM_PER_M = 100.0

# Message unique présenté à l'utilisateur en cas d'échec de récupération
RETRIEVAL_ERROR_MESSAGE = "Erreur lors de la récupération des données. Vérifiez votre connexion internet."

# Types d'alerte
ALERT_NTH = "NTH"
ALERT_NTB = "NTB"
ALERT_OVERFLOW = "Overflow"

# En-têtes d'export CSV (séparateur ';')
CSV_SEPARATOR = ";"
PROCESSED_CSV_HEADERS = [
    "Date",
    "Heure",
    "Niveau (m)",
    "Niveau filtré (m)",
    "Débit Entrée (m³/h)",
    "Débit Sortie (m³/h)",
    "Volume cumulé (m³)",
]
DAILY_CSV_HEADERS = ["Date", "Volume (m³)"]
