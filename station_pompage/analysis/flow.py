"""Calcul des débits d'entrée / sortie et du volume cumulé à partir du niveau.

Modèle: variation de niveau = bilan entrée - sortie sur une bâche de surface
constante. Faute de débitmètre en sortie, le débit sortant n'est estimé que
pendant les phases de baisse: le dernier débit entrant observé est supposé
persister, et l'on en retranche le débit impliqué par la variation de niveau.
C'est une heuristique et non un bilan de masse exact; les valeurs des
installations existantes sont calibrées dessus.
"""

from collections import OrderedDict
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from station_pompage.core.models import (
    ChannelConfig,
    ChannelData,
    DailyVolume,
    FlowResult,
    ProcessedSample,
    PumpFlowSample,
    TelemetrySample,
)
from station_pompage.data.preprocessing import levels_to_meters, prepare_levels

PumpData = Mapping[str, Sequence[TelemetrySample]]


def calculate_pump_flow(channel: ChannelConfig, pump_states: Sequence[Optional[float]]) -> float:
    """Somme des débits nominaux des pompes en marche (état == 1).

    Args:
        channel: Configuration du canal
        pump_states: États des pompes, dans l'ordre de ``channel.pumps``

    Returns:
        Débit total des pompes (m³/h), 0 si le canal n'utilise pas les pompes

    Example:
        >>> from station_pompage.core.models import Pump
        >>> ch = ChannelConfig(id=1, name="x", use_pump_flow=True, pumps=(Pump(1, 200.0), Pump(2, 150.0)))
        >>> calculate_pump_flow(ch, [1, 0])
        200.0
    """
    if not channel.use_pump_flow or not channel.pumps:
        return 0.0
    total = 0.0
    for index, pump in enumerate(channel.pumps):
        if index < len(pump_states) and pump_states[index] == 1:
            total += pump.flow_rate
    return total


def pump_flow_series(channel: ChannelConfig, pump_data: PumpData) -> List[PumpFlowSample]:
    """Débit des pompes à chaque horodatage où au moins un état est connu."""
    if not channel.use_pump_flow or not channel.pumps:
        return []
    keys = channel.pump_field_keys()
    columns = {
        key: pd.Series(
            [s.value for s in pump_data.get(key, [])],
            index=[s.timestamp for s in pump_data.get(key, [])],
            dtype="float64",
        )
        for key in keys
    }
    frame = pd.DataFrame(columns).sort_index()
    if frame.empty:
        return []

    out: List[PumpFlowSample] = []
    for ts, row in frame.iterrows():
        states = [None if pd.isna(row[key]) else float(row[key]) for key in keys]
        per_pump = {
            pump.id: (pump.flow_rate if i < len(states) and states[i] == 1 else 0.0)
            for i, pump in enumerate(channel.pumps)
        }
        out.append(PumpFlowSample(date=ts, total=calculate_pump_flow(channel, states), per_pump=per_pump))
    return out


def _passthrough(samples: Sequence[TelemetrySample]) -> List[ProcessedSample]:
    return [
        ProcessedSample(
            date=s.timestamp,
            level=level,
            filtered_level=None,
            q_entree=0.0,
            q_sortie=0.0,
            volume_index=0.0,
        )
        for s, level in zip(samples, levels_to_meters(samples))
    ]


def derive_flows(
    samples: Sequence[TelemetrySample],
    channel: ChannelConfig,
    pump_data: Optional[PumpData] = None,
) -> FlowResult:
    """Calcule débits, volume cumulé et volumes journaliers d'une série de niveaux.

    Fonction pure: mêmes entrées, même résultat. Sans ``surface`` ou avec le
    calcul désactivé, le niveau (m) est transmis avec débits et volume nuls.

    Pour chaque paire d'échantillons consécutifs:

    - ``delta_hours <= 0``: débits nuls, volume inchangé, tendance inchangée;
    - hausse (``delta_level > 0``): ``q_entree = delta_level * surface / delta_hours``,
      mémorisé comme dernier débit entrant;
    - baisse ou palier: ``q_sortie = max(0, dernier_q_entree - delta_level * surface / delta_hours)``,
      et ``q_sortie * delta_hours`` s'ajoute au volume cumulé et au volume du jour.

    Args:
        samples: Niveaux bruts (cm), triés par horodatage
        channel: Configuration du canal
        pump_data: Séries d'état des pompes par clé de champ (optionnel)

    Returns:
        ``FlowResult`` avec échantillons traités et agrégats

    Example:
        >>> ts = pd.date_range("2025-01-01", periods=3, freq="h")
        >>> s = [TelemetrySample(t, v) for t, v in zip(ts, [100.0, 150.0, 150.0])]
        >>> r = derive_flows(s, ChannelConfig(id=1, name="x", surface=10.0, enable_flow_calculation=True))
        >>> r.volume_index
        5.0
    """
    pump_flow = pump_flow_series(channel, pump_data) if pump_data else []

    if not channel.can_derive_flow or len(samples) == 0:
        return FlowResult(processed=_passthrough(samples), pump_flow=pump_flow)

    surface = float(channel.surface)
    filtering = channel.filtering_active
    levels = prepare_levels(samples, filtering, channel.filter_window_size)

    last_q_entree = 0.0
    q_entree_sum = 0.0
    rising_count = 0
    volume = 0.0
    daily: Dict = {}
    processed: List[ProcessedSample] = []
    raw_levels = levels_to_meters(samples)

    for i, sample in enumerate(samples):
        level = levels[i]
        filtered_level = level if filtering else None

        if i == 0:
            processed.append(ProcessedSample(sample.timestamp, raw_levels[i], filtered_level, 0.0, 0.0, 0.0))
            continue

        delta_level = level - levels[i - 1]
        delta_hours = (sample.timestamp - samples[i - 1].timestamp).total_seconds() / 3600.0

        if delta_hours <= 0:
            processed.append(ProcessedSample(sample.timestamp, raw_levels[i], filtered_level, 0.0, 0.0, volume))
            continue

        if delta_level > 0:
            q_entree = delta_level * surface / delta_hours
            q_sortie = 0.0
            q_entree_sum += q_entree
            rising_count += 1
            last_q_entree = q_entree
        else:
            q_entree = 0.0
            q_sortie = max(0.0, last_q_entree - delta_level * surface / delta_hours)
            interval_volume = q_sortie * delta_hours
            volume += interval_volume
            if interval_volume > 0:
                day = sample.timestamp.date()
                daily[day] = daily.get(day, 0.0) + interval_volume

        processed.append(ProcessedSample(sample.timestamp, raw_levels[i], filtered_level, q_entree, q_sortie, volume))

    return FlowResult(
        processed=processed,
        average_q_entree=q_entree_sum / rising_count if rising_count > 0 else 0.0,
        total_q_sortie=volume,
        volume_index=volume,
        daily_volumes=[DailyVolume(date=d, volume=v) for d, v in sorted(daily.items())],
        pump_flow=pump_flow,
    )


def level_metrics(processed: Sequence[ProcessedSample]) -> Dict[str, Optional[float]]:
    """Niveau actuel, moyen et maximal (m) sur la période.

    Args:
        processed: Échantillons traités (niveau brut en mètres)

    Returns:
        ``{"current", "average", "max"}``, valeurs ``None`` si la période est vide

    Example:
        >>> ts = pd.date_range("2025-01-01", periods=3, freq="h")
        >>> s = [TelemetrySample(t, v) for t, v in zip(ts, [100.0, 300.0, 200.0])]
        >>> level_metrics(derive_flows(s, ChannelConfig(id=1, name="x")).processed)
        {'current': 2.0, 'average': 2.0, 'max': 3.0}
    """
    levels = pd.Series([p.level for p in processed], dtype="float64")
    if levels.empty:
        return {"current": None, "average": None, "max": None}
    return {"current": float(levels.iloc[-1]), "average": float(levels.mean()), "max": float(levels.max())}


def derive_channel(data: ChannelData, channel: ChannelConfig) -> FlowResult:
    """Applique ``derive_flows`` au champ de niveau d'un ``ChannelData`` fusionné."""
    pump_data = {key: data.data.get(key, []) for key in channel.pump_field_keys()}
    return derive_flows(data.level_samples(), channel, pump_data if channel.use_pump_flow else None)


def _cache_key(samples: Sequence[TelemetrySample], channel: ChannelConfig, pump_data: Optional[PumpData]) -> Tuple:
    series_key = tuple((s.timestamp, s.value) for s in samples)
    config_key = (
        channel.id,
        channel.enable_flow_calculation,
        channel.surface,
        channel.enable_filtering,
        channel.filter_window_size,
        channel.use_pump_flow,
        channel.pumps,
    )
    pumps_key = (
        tuple(sorted((k, tuple((s.timestamp, s.value) for s in v)) for k, v in pump_data.items()))
        if pump_data
        else None
    )
    return series_key, config_key, pumps_key


class FlowCalculator:
    """Mémoïsation de ``derive_flows``: recalcul uniquement si les entrées changent.

    La clé est structurelle: la série (horodatage, valeur), les champs de
    configuration utilisés par le calcul et les états de pompes.
    """

    def __init__(self, max_entries: int = 32):
        self.max_entries = max_entries
        self._cache: "OrderedDict[Tuple, FlowResult]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def compute(
        self,
        samples: Sequence[TelemetrySample],
        channel: ChannelConfig,
        pump_data: Optional[PumpData] = None,
    ) -> FlowResult:
        key = _cache_key(samples, channel, pump_data)
        cached = self._cache.get(key)
        if cached is not None:
            self.hits += 1
            self._cache.move_to_end(key)
            return cached
        self.misses += 1
        result = derive_flows(samples, channel, pump_data)
        self._cache[key] = result
        if len(self._cache) > self.max_entries:
            self._cache.popitem(last=False)
        return result

    def compute_channel(self, data: ChannelData, channel: ChannelConfig) -> FlowResult:
        pump_data = {key: data.data.get(key, []) for key in channel.pump_field_keys()}
        return self.compute(data.level_samples(), channel, pump_data if channel.use_pump_flow else None)

    def clear(self) -> None:
        self._cache.clear()
