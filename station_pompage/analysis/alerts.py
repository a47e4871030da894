"""Machine d'états des alertes NTH / NTB / débordement, avec hystérésis."""

import logging
import threading
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from station_pompage.core.constants import (
    ALERT_NTB,
    ALERT_NTH,
    ALERT_OVERFLOW,
    DEFAULT_MONITOR_INTERVAL_MIN,
)
from station_pompage.core.models import AlertEvent, AlertState, ChannelConfig

logger = logging.getLogger(__name__)


def format_level(level: float) -> str:
    """Affiche un niveau sans décimale superflue (``3.0`` → ``"3"``)."""
    value = float(level)
    return str(int(value)) if value.is_integer() else repr(value)


def build_event(kind: str, channel: ChannelConfig, level: float) -> AlertEvent:
    """Construit le sujet et le corps du message d'une entrée en alerte."""
    value = format_level(level)
    if kind == ALERT_NTH:
        subject = f"Alerte NTH pour {channel.name}"
        body = f"Le niveau est très haut pour le canal {channel.name}. Valeur actuelle : {value}"
    elif kind == ALERT_NTB:
        subject = f"Alerte NTB pour {channel.name}"
        body = f"Le niveau est très bas pour le canal {channel.name}. Valeur actuelle : {value}"
    elif kind == ALERT_OVERFLOW:
        subject = f"Alerte de débordement pour {channel.name}"
        body = f"Un débordement a été détecté pour le canal {channel.name}. Valeur actuelle : {value}"
    else:
        raise ValueError(f"Type d'alerte inconnu: {kind}")
    return AlertEvent(
        kind=kind,
        channel_id=channel.id,
        channel_name=channel.name,
        level=float(level),
        subject=subject,
        body=body,
    )


def step(
    state: AlertState,
    level: Optional[float],
    channel: ChannelConfig,
    interval_minutes: float = DEFAULT_MONITOR_INTERVAL_MIN,
) -> Tuple[AlertState, List[AlertEvent]]:
    """Transition pure de l'état d'alerte pour une nouvelle mesure de niveau.

    Chaque condition est indépendante. Entrée: ``>`` (NTH, débordement) ou
    ``<`` (NTB); sortie: ``<=`` / ``>=`` sur le même seuil. Seule une entrée
    (faux → vrai) produit un événement. Tant que le débordement dure,
    ``overflow_duration`` augmente de ``interval_minutes`` à chaque évaluation.

    Args:
        state: État courant
        level: Dernier niveau (m), ``None`` si inconnu
        channel: Configuration du canal (les trois seuils sont requis)
        interval_minutes: Cadence de surveillance (minutes)

    Returns:
        ``(nouvel_état, événements)``; état inchangé et aucun événement si un
        seuil manque ou si le niveau est inconnu

    Example:
        >>> ch = ChannelConfig(id=1, name="SR", nth_threshold=3.0, ntb_threshold=1.0, overflow_threshold=3.5)
        >>> s, ev = step(AlertState(), 3.2, ch)
        >>> s.is_nth, [e.kind for e in ev]
        (True, ['NTH'])
    """
    if level is None or not channel.has_alert_thresholds:
        return state, []

    events: List[AlertEvent] = []
    is_nth, is_ntb, is_overflowing = state.is_nth, state.is_ntb, state.is_overflowing
    overflow_count, overflow_duration = state.overflow_count, state.overflow_duration

    if level > channel.nth_threshold and not is_nth:
        is_nth = True
        events.append(build_event(ALERT_NTH, channel, level))
    elif level <= channel.nth_threshold:
        is_nth = False

    if level < channel.ntb_threshold and not is_ntb:
        is_ntb = True
        events.append(build_event(ALERT_NTB, channel, level))
    elif level >= channel.ntb_threshold:
        is_ntb = False

    if level > channel.overflow_threshold and not is_overflowing:
        is_overflowing = True
        overflow_count += 1
        events.append(build_event(ALERT_OVERFLOW, channel, level))
    elif level <= channel.overflow_threshold:
        is_overflowing = False

    if is_overflowing:
        overflow_duration += interval_minutes

    new_state = replace(
        state,
        is_nth=is_nth,
        is_ntb=is_ntb,
        is_overflowing=is_overflowing,
        overflow_count=overflow_count,
        overflow_duration=overflow_duration,
    )
    return new_state, events


class AlertMonitor:
    """Conserve l'état d'alerte de chaque canal et envoie les notifications.

    Les évaluations d'un même canal sont sérialisées; les canaux sont
    indépendants et peuvent être évalués en parallèle.
    """

    def __init__(self, catalog, notifier, interval_minutes: float = DEFAULT_MONITOR_INTERVAL_MIN):
        self.catalog = catalog
        self.notifier = notifier
        self.interval_minutes = interval_minutes
        self._states: Dict[int, AlertState] = {}
        self._locks: Dict[int, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, channel_id: int) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(channel_id, threading.Lock())

    def state(self, channel_id: int) -> AlertState:
        return self._states.get(channel_id, AlertState())

    def reset(self, channel_id: int) -> None:
        with self._lock_for(channel_id):
            self._states.pop(channel_id, None)

    def observe(self, channel: ChannelConfig, level: Optional[float]) -> List[AlertEvent]:
        """Évalue une mesure et notifie chaque entrée en alerte."""
        with self._lock_for(channel.id):
            new_state, events = step(self.state(channel.id), level, channel, self.interval_minutes)
            self._states[channel.id] = new_state

        for event in events:
            self.dispatch(channel, event)
        return events

    def dispatch(self, channel: ChannelConfig, event: AlertEvent) -> bool:
        addresses = self.catalog.resolve_emails(channel.email_group)
        if not addresses:
            logger.warning(f"Aucun destinataire pour le groupe {channel.email_group} ({channel.name})")
        success = self.notifier.notify(addresses, event.subject, event.body)
        if success:
            logger.info(f"Alerte {event.kind} envoyée pour {channel.name}")
        else:
            logger.error(f"Échec de l'envoi de l'alerte {event.kind} pour {channel.name}")
        return success
