"""Export CSV (séparateur ';') des échantillons traités et des volumes journaliers."""

import logging
from pathlib import Path
from typing import Sequence

import pandas as pd

from station_pompage.core.constants import CSV_SEPARATOR, DAILY_CSV_HEADERS, PROCESSED_CSV_HEADERS
from station_pompage.core.models import DailyVolume, ProcessedSample
from station_pompage.output.formatters import format_date, format_optional, format_time

logger = logging.getLogger(__name__)


def processed_to_frame(processed: Sequence[ProcessedSample]) -> pd.DataFrame:
    """Tableau d'export des échantillons traités (valeurs déjà formatées).

    Niveaux à 3 décimales, débits et volume à 2 décimales; le niveau filtré est
    vide lorsque le filtrage est désactivé.
    """
    rows = [
        [
            format_date(p.date),
            format_time(p.date),
            f"{p.level:.3f}",
            format_optional(p.filtered_level, 3),
            f"{p.q_entree:.2f}",
            f"{p.q_sortie:.2f}",
            f"{p.volume_index:.2f}",
        ]
        for p in processed
    ]
    return pd.DataFrame(rows, columns=PROCESSED_CSV_HEADERS)


def daily_volumes_to_frame(daily_volumes: Sequence[DailyVolume]) -> pd.DataFrame:
    rows = [[d.date.strftime("%d/%m/%Y"), f"{d.volume:.2f}"] for d in daily_volumes]
    return pd.DataFrame(rows, columns=DAILY_CSV_HEADERS)


def _to_csv(frame: pd.DataFrame) -> str:
    if frame.empty:
        return ""
    return frame.to_csv(sep=CSV_SEPARATOR, index=False, lineterminator="\n")


def processed_to_csv(processed: Sequence[ProcessedSample]) -> str:
    """Texte CSV des échantillons traités; chaîne vide si aucune donnée.

    Example:
        >>> processed_to_csv([])
        ''
    """
    return _to_csv(processed_to_frame(processed))


def daily_volumes_to_csv(daily_volumes: Sequence[DailyVolume]) -> str:
    return _to_csv(daily_volumes_to_frame(daily_volumes))


def write_csv(content: str, path: str) -> Path:
    """Écrit le CSV (UTF-8) et crée le dossier parent si besoin."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(content, encoding="utf-8")
    logger.info(f"✓ Export écrit: {out} ({content.count(chr(10))} lignes)")
    return out
