"""Module core: modèles de données, constantes, paramètres et catalogue des canaux."""

from station_pompage.core.channels import ChannelCatalog
from station_pompage.core.errors import FetchCancelled, RetrievalError, StationError, TelemetryParseError
from station_pompage.core.models import (
    AlertEvent,
    AlertState,
    ChannelConfig,
    ChannelData,
    DailyVolume,
    FlowResult,
    ProcessedSample,
    Pump,
    TelemetrySample,
)
from station_pompage.core.settings import Settings

__all__ = [
    "AlertEvent",
    "AlertState",
    "ChannelCatalog",
    "ChannelConfig",
    "ChannelData",
    "DailyVolume",
    "FetchCancelled",
    "FlowResult",
    "ProcessedSample",
    "Pump",
    "RetrievalError",
    "Settings",
    "StationError",
    "TelemetryParseError",
    "TelemetrySample",
]
