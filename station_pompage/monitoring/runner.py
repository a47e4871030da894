"""Boucle de surveillance: dernier niveau de chaque canal → machine d'états des alertes."""

import logging
import time
from typing import Callable, Dict, Optional

from station_pompage.analysis.alerts import AlertMonitor
from station_pompage.core.channels import ChannelCatalog
from station_pompage.core.constants import CM_PER_M, FIELD_KEYS
from station_pompage.core.errors import RetrievalError
from station_pompage.core.models import ChannelData
from station_pompage.output.console import print_alert_state

logger = logging.getLogger(__name__)

LatestFetcher = Callable[[int], ChannelData]


def latest_level_m(data: Optional[ChannelData]) -> Optional[float]:
    """Dernier niveau (m) du champ de niveau, ``None`` si absent."""
    if data is None:
        return None
    value = data.latest_value(FIELD_KEYS[0])
    return None if value is None else value / CM_PER_M


def poll_once(
    catalog: ChannelCatalog,
    monitor: AlertMonitor,
    latest: LatestFetcher,
    console_format: Optional[str] = None,
) -> Dict[int, Optional[float]]:
    """Une passe de surveillance sur tous les canaux disposant des trois seuils.

    Un canal injoignable est ignoré pour cette passe: son état n'est pas modifié.

    Returns:
        Niveau lu par canal (``None`` si indisponible)
    """
    levels: Dict[int, Optional[float]] = {}
    for channel in catalog.monitored():
        try:
            level = latest_level_m(latest(channel.id))
        except RetrievalError as e:
            logger.warning(f"Canal {channel.name} ({channel.id}) indisponible: {e}")
            levels[channel.id] = None
            continue
        levels[channel.id] = level
        monitor.observe(channel, level)
        if console_format:
            print_alert_state(channel, monitor.state(channel.id), level, console_format)
    return levels


def run_monitoring(
    catalog: ChannelCatalog,
    monitor: AlertMonitor,
    latest: LatestFetcher,
    interval_minutes: float,
    max_iterations: Optional[int] = None,
    console_format: Optional[str] = "rich",
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Exécute ``poll_once`` toutes les ``interval_minutes`` minutes.

    Args:
        catalog: Catalogue des canaux
        monitor: États d'alerte (conservés entre les passes)
        latest: Récupération du dernier enregistrement d'un canal
        interval_minutes: Cadence (minutes)
        max_iterations: Nombre de passes (``None`` = sans fin)
        console_format: Format d'affichage, ``None`` pour ne rien afficher
        sleep: Fonction d'attente (remplaçable en test)

    Returns:
        Nombre de passes effectuées
    """
    monitored = catalog.monitored()
    if not monitored:
        logger.warning("Aucun canal ne dispose des seuils NTH/NTB/débordement: rien à surveiller")
        return 0
    logger.info(f"Surveillance de {len(monitored)} canal(aux) toutes les {interval_minutes:g} min")

    iterations = 0
    while max_iterations is None or iterations < max_iterations:
        poll_once(catalog, monitor, latest, console_format)
        iterations += 1
        if max_iterations is not None and iterations >= max_iterations:
            break
        sleep(interval_minutes * 60.0)
    return iterations
