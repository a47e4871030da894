"""Modèles de données pour la surveillance des stations de pompage."""

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import pandas as pd

from station_pompage.core.constants import FIELD_KEYS


class FieldRole(str, Enum):
    """Rôle sémantique d'un champ ThingSpeak."""

    LEVEL = "level"
    PUMP_STATE = "pump_state"


@dataclass(frozen=True)
class Pump:
    """Pompe d'une station.

    Attributes:
        id: Identifiant de la pompe (1, 2, ...)
        flow_rate: Débit nominal (m³/h) lorsque la pompe est en marche
    """

    id: int
    flow_rate: float


@dataclass(frozen=True)
class ChannelConfig:
    """Configuration statique d'un canal (une station).

    Attributes:
        id: Identifiant numérique du canal ThingSpeak
        name: Nom affiché de la station
        surface: Surface de la bâche (m²), requise pour le calcul des débits
        enable_flow_calculation: Active le calcul des débits et volumes
        enable_filtering: Active la moyenne mobile sur le niveau
        filter_window_size: Taille de la fenêtre de filtrage (échantillons, >= 1)
        use_pump_flow: Expose le débit calculé à partir de l'état des pompes
        pumps: Pompes configurées, dans l'ordre des champs d'état
        nth_threshold: Seuil de niveau très haut (m)
        ntb_threshold: Seuil de niveau très bas (m)
        overflow_threshold: Seuil de débordement (m)
        email_group: Identifiant du groupe de destinataires des alertes
    """

    id: int
    name: str
    surface: Optional[float] = None
    enable_flow_calculation: bool = False
    enable_filtering: bool = False
    filter_window_size: Optional[int] = None
    use_pump_flow: bool = False
    pumps: Tuple[Pump, ...] = ()
    nth_threshold: Optional[float] = None
    ntb_threshold: Optional[float] = None
    overflow_threshold: Optional[float] = None
    email_group: Optional[int] = None

    @property
    def can_derive_flow(self) -> bool:
        return bool(self.enable_flow_calculation and self.surface)

    @property
    def filtering_active(self) -> bool:
        return bool(self.enable_filtering and self.filter_window_size)

    @property
    def has_alert_thresholds(self) -> bool:
        return None not in (self.nth_threshold, self.ntb_threshold, self.overflow_threshold)

    def field_roles(self) -> Dict[str, Tuple[FieldRole, Optional[int]]]:
        """Résout une fois la table champ → rôle.

        Le niveau est toujours ``field1``; la pompe d'indice *i* lit son état
        dans le champ d'indice *i + 2* (``field{i + 3}``).

        Returns:
            Dictionnaire ``{clé_champ: (rôle, indice_pompe)}``

        Example:
            >>> ch = ChannelConfig(id=1, name="x", pumps=(Pump(1, 200.0),))
            >>> ch.field_roles()["field3"]
            (<FieldRole.PUMP_STATE: 'pump_state'>, 0)
        """
        roles: Dict[str, Tuple[FieldRole, Optional[int]]] = {FIELD_KEYS[0]: (FieldRole.LEVEL, None)}
        for i, _pump in enumerate(self.pumps):
            idx = i + 2
            if idx < len(FIELD_KEYS):
                roles[FIELD_KEYS[idx]] = (FieldRole.PUMP_STATE, i)
        return roles

    def pump_field_keys(self) -> List[str]:
        return [key for key, (role, _) in self.field_roles().items() if role is FieldRole.PUMP_STATE]


@dataclass(frozen=True)
class EmailGroup:
    id: int
    emails: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TelemetrySample:
    """Mesure ``(timestamp, valeur)`` d'un champ d'un canal."""

    timestamp: pd.Timestamp
    value: float


@dataclass
class ChannelData:
    """Données d'un canal: libellés des champs et séries d'échantillons par champ."""

    name: str
    fields: Dict[str, str] = field(default_factory=dict)
    data: Dict[str, List[TelemetrySample]] = field(default_factory=dict)

    def level_samples(self) -> List[TelemetrySample]:
        return list(self.data.get(FIELD_KEYS[0], []))

    def latest_value(self, field_key: str = FIELD_KEYS[0]) -> Optional[float]:
        samples = self.data.get(field_key) or []
        return samples[-1].value if samples else None


@dataclass(frozen=True)
class ProcessedSample:
    """Échantillon dérivé: niveau (m), débits (m³/h) et volume cumulé (m³)."""

    date: pd.Timestamp
    level: float
    filtered_level: Optional[float]
    q_entree: float
    q_sortie: float
    volume_index: float


@dataclass(frozen=True)
class DailyVolume:
    date: dt.date
    volume: float


@dataclass(frozen=True)
class PumpFlowSample:
    """Débit des pompes à un instant: total et contribution de chaque pompe."""

    date: pd.Timestamp
    total: float
    per_pump: Dict[int, float]


@dataclass
class FlowResult:
    """Résultat du calcul des débits pour une série de niveaux."""

    processed: List[ProcessedSample] = field(default_factory=list)
    average_q_entree: float = 0.0
    total_q_sortie: float = 0.0
    volume_index: float = 0.0
    daily_volumes: List[DailyVolume] = field(default_factory=list)
    pump_flow: List[PumpFlowSample] = field(default_factory=list)


@dataclass(frozen=True)
class AlertState:
    """État d'alerte d'un canal (non persisté).

    Attributes:
        is_nth: Niveau très haut en cours
        is_ntb: Niveau très bas en cours
        is_overflowing: Débordement en cours
        overflow_count: Nombre d'entrées en débordement
        overflow_duration: Minutes cumulées en débordement
    """

    is_nth: bool = False
    is_ntb: bool = False
    is_overflowing: bool = False
    overflow_count: int = 0
    overflow_duration: float = 0.0


@dataclass(frozen=True)
class AlertEvent:
    """Notification à émettre suite à une entrée en alerte."""

    kind: str
    channel_id: int
    channel_name: str
    level: float
    subject: str
    body: str
