"""Fusion des résultats de plusieurs fenêtres de requête en une seule série par champ."""

import logging
from typing import Dict, List, Optional, Sequence

from station_pompage.core.models import ChannelData, TelemetrySample

logger = logging.getLogger(__name__)


def dedupe_sorted(samples: Sequence[TelemetrySample]) -> List[TelemetrySample]:
    """Trie par horodatage (tri stable) et supprime les doublons exacts d'horodatage.

    La première occurrence d'un horodatage est conservée.

    Args:
        samples: Échantillons dans un ordre quelconque

    Returns:
        Liste strictement croissante en horodatage
    """
    ordered = sorted(samples, key=lambda s: s.timestamp)
    out: List[TelemetrySample] = []
    for s in ordered:
        if out and out[-1].timestamp == s.timestamp:
            continue
        out.append(s)
    return out


def merge_channel_data(results: Sequence[Optional[ChannelData]]) -> Optional[ChannelData]:
    """Fusionne les résultats par fenêtre en un seul ``ChannelData``.

    Les fenêtres absentes (échec) sont ignorées. Les libellés et le nom viennent
    de la première fenêtre valide; les échantillons de chaque champ sont l'union
    de toutes les fenêtres, triée par horodatage et sans doublon.

    Args:
        results: Résultats par fenêtre, ``None`` pour une fenêtre en échec

    Returns:
        Données fusionnées, ou ``None`` si toutes les fenêtres ont échoué

    Example:
        >>> merge_channel_data([None, None]) is None
        True
    """
    valid = [r for r in results if r is not None]
    if not valid:
        return None
    if len(valid) < len(results):
        logger.warning(f"{len(results) - len(valid)}/{len(results)} fenêtre(s) ignorée(s) lors de la fusion")

    first = valid[0]
    pooled: Dict[str, List[TelemetrySample]] = {}
    for window in valid:
        for key, samples in window.data.items():
            pooled.setdefault(key, []).extend(samples)

    return ChannelData(
        name=first.name,
        fields=dict(first.fields),
        data={key: dedupe_sorted(samples) for key, samples in pooled.items()},
    )
