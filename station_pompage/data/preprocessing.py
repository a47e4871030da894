"""Prétraitement des séries de niveau: conversion d'unités et moyenne mobile."""

from typing import List, Sequence

import pandas as pd

from station_pompage.core.constants import CM_PER_M
from station_pompage.core.models import TelemetrySample


def levels_to_meters(samples: Sequence[TelemetrySample]) -> List[float]:
    """Convertit les niveaux bruts (cm) en mètres."""
    return [s.value / CM_PER_M for s in samples]


def moving_average(values: Sequence[float], window_size: int) -> List[float]:
    """Moyenne mobile arrière à largeur variable en début de série.

    L'élément *i* est la moyenne de ``values[max(0, i - window_size + 1) .. i]``:
    pas d'anticipation ni de remplissage par zéro.

    Args:
        values: Série d'entrée
        window_size: Taille de la fenêtre (échantillons, >= 1)

    Returns:
        Série lissée de même longueur

    Raises:
        ValueError: Si ``window_size < 1``

    Example:
        >>> moving_average([1.0, 2.0, 3.0, 4.0], 2)
        [1.0, 1.5, 2.5, 3.5]
        >>> moving_average([5.0], 10)
        [5.0]
    """
    if window_size < 1:
        raise ValueError(f"window_size doit être >= 1 (reçu {window_size})")
    if len(values) == 0:
        return []
    if window_size == 1:
        return [float(v) for v in values]
    s = pd.Series(values, dtype="float64")
    return s.rolling(window=int(window_size), min_periods=1).mean().tolist()


def prepare_levels(samples: Sequence[TelemetrySample], enable_filtering: bool, window_size) -> List[float]:
    """Niveaux en mètres, lissés si le filtrage est actif."""
    levels = levels_to_meters(samples)
    if enable_filtering and window_size:
        return moving_average(levels, int(window_size))
    return levels
