"""Récupération de la télémétrie ThingSpeak par fenêtres de 7 jours au plus."""

import logging
import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote, urlencode

import pandas as pd
import requests

from station_pompage.core.constants import (
    FIELD_KEYS,
    MAX_WINDOW_DAYS,
    STATION_TIMEZONE,
    THINGSPEAK_BASE_URL,
    THINGSPEAK_PROXY_URL,
)
from station_pompage.core.errors import FetchCancelled, RetrievalError, TelemetryParseError
from station_pompage.core.models import ChannelData, TelemetrySample
from station_pompage.data.merge import merge_channel_data

logger = logging.getLogger(__name__)

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S"

WindowFetcher = Callable[[int, str, str], ChannelData]


def split_range(
    start: pd.Timestamp, end: pd.Timestamp, max_days: int = MAX_WINDOW_DAYS
) -> List[Tuple[pd.Timestamp, pd.Timestamp]]:
    """Découpe ``[start, end]`` en sous-fenêtres contiguës d'au plus ``max_days`` jours.

    Deux fenêtres consécutives partagent leur borne; la fusion élimine le doublon.

    Args:
        start: Début inclusif
        end: Fin inclusive
        max_days: Durée maximale d'une fenêtre (jours)

    Returns:
        Liste ordonnée de ``(début, fin)``

    Raises:
        ValueError: Si ``end < start`` ou ``max_days <= 0``

    Example:
        >>> w = split_range(pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-20"))
        >>> len(w)
        3
    """
    start, end = pd.Timestamp(start), pd.Timestamp(end)
    if max_days <= 0:
        raise ValueError("max_days doit être > 0")
    if end < start:
        raise ValueError(f"Fin ({end}) antérieure au début ({start})")
    step = pd.Timedelta(days=max_days)
    windows: List[Tuple[pd.Timestamp, pd.Timestamp]] = []
    cursor = start
    while True:
        upper = min(cursor + step, end)
        windows.append((cursor, upper))
        if upper >= end:
            break
        cursor = upper
    return windows


def _parse_value(raw: Any, field_key: str, created_at: Any) -> Optional[float]:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise TelemetryParseError(f"Valeur non numérique pour {field_key} à {created_at}: {raw!r}") from e
    if not math.isfinite(value):
        raise TelemetryParseError(f"Valeur non finie pour {field_key} à {created_at}: {raw!r}")
    return value


def _parse_timestamp(raw: Any) -> pd.Timestamp:
    try:
        ts = pd.Timestamp(raw)
    except (TypeError, ValueError) as e:
        raise TelemetryParseError(f"Horodatage invalide: {raw!r}") from e
    if pd.isna(ts):
        raise TelemetryParseError(f"Horodatage invalide: {raw!r}")
    return ts


def parse_feed_payload(payload: Any) -> ChannelData:
    """Convertit une réponse ``feeds.json`` en ``ChannelData``, de façon stricte.

    Une valeur absente (``null`` ou vide) n'est pas une mesure et est ignorée;
    une valeur présente mais non numérique fait échouer toute la fenêtre.

    Args:
        payload: JSON décodé de l'API ThingSpeak

    Returns:
        Données du canal pour la fenêtre

    Raises:
        RetrievalError: Si l'enveloppe ``channel`` / ``feeds`` est absente ou mal formée
        TelemetryParseError: Si une valeur ou un horodatage est illisible
    """
    if not isinstance(payload, dict):
        raise RetrievalError("Réponse de l'API invalide")
    channel, feeds = payload.get("channel"), payload.get("feeds")
    if not isinstance(channel, dict) or not channel or not isinstance(feeds, list):
        raise RetrievalError("Réponse de l'API invalide")
    if not all(isinstance(feed, dict) for feed in feeds):
        raise RetrievalError("Réponse de l'API invalide: enregistrement mal formé")

    fields: Dict[str, str] = {}
    for key in FIELD_KEYS:
        label = channel.get(key)
        if label:
            fields[key] = str(label)

    data: Dict[str, List[TelemetrySample]] = {key: [] for key in fields}
    for feed in feeds:
        created_at = feed.get("created_at")
        ts = _parse_timestamp(created_at)
        for key in fields:
            value = _parse_value(feed.get(key), key, created_at)
            if value is not None:
                data[key].append(TelemetrySample(timestamp=ts, value=value))

    return ChannelData(name=str(channel.get("name", "")), fields=fields, data=data)


def build_feed_url(channel_id: int, params: Dict[str, Any], base_url: str = None, proxy_url: str = None) -> str:
    base = (base_url or THINGSPEAK_BASE_URL).rstrip("/")
    target = f"{base}/channels/{int(channel_id)}/feeds.json?{urlencode(params)}"
    proxy = THINGSPEAK_PROXY_URL if proxy_url is None else proxy_url
    if proxy:
        return proxy + quote(target, safe="")
    return target


def _get_json(url: str, session: Optional[requests.Session], timeout: Optional[float]) -> Any:
    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
        return response.json()
    except requests.RequestException as e:
        raise RetrievalError(f"Erreur HTTP: {e!r}") from e
    except ValueError as e:
        raise RetrievalError(f"JSON invalide: {e!r}") from e


def fetch_window(
    channel_id: int,
    start_iso: str,
    end_iso: str,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
    base_url: Optional[str] = None,
    proxy_url: Optional[str] = None,
) -> ChannelData:
    """Récupère une fenêtre ``[start_iso, end_iso]`` (heure locale de la station).

    Raises:
        RetrievalError: Erreur réseau, JSON illisible ou enveloppe incomplète
    """
    params = {"start": start_iso, "end": end_iso, "timezone": STATION_TIMEZONE}
    url = build_feed_url(channel_id, params, base_url=base_url, proxy_url=proxy_url)
    logger.debug(f"GET {url}")
    return parse_feed_payload(_get_json(url, session, timeout))


def fetch_latest(
    channel_id: int,
    results: int = 1,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> ChannelData:
    """Récupère les ``results`` dernières mesures du canal."""
    params = {"results": int(results), "timezone": STATION_TIMEZONE}
    return parse_feed_payload(_get_json(build_feed_url(channel_id, params), session, timeout))


class FetchToken:
    """Jeton d'annulation d'une requête multi-fenêtres."""

    def __init__(self):
        self._cancelled = threading.Event()
        self._futures: List[Future] = []
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def attach(self, future: Future) -> None:
        with self._lock:
            self._futures.append(future)
            if self.cancelled:
                future.cancel()

    def cancel(self) -> None:
        self._cancelled.set()
        with self._lock:
            for fut in self._futures:
                fut.cancel()


def fetch_range(
    channel_id: int,
    start: pd.Timestamp,
    end: pd.Timestamp,
    token: Optional[FetchToken] = None,
    fetch: WindowFetcher = fetch_window,
    max_days: int = MAX_WINDOW_DAYS,
    max_workers: int = 8,
) -> ChannelData:
    """Récupère ``[start, end]`` par fenêtres concurrentes puis fusionne une seule fois.

    Les fenêtres en échec sont ignorées (avertissement); la fusion n'a lieu
    qu'une fois toutes les requêtes terminées.

    Args:
        channel_id: Identifiant du canal
        start: Début inclusif (heure locale)
        end: Fin inclusive (heure locale)
        token: Jeton d'annulation (optionnel)
        fetch: Fonction de récupération d'une fenêtre ``(id, start_iso, end_iso)``
        max_days: Durée maximale d'une fenêtre
        max_workers: Requêtes simultanées maximales

    Returns:
        Données fusionnées (éventuellement vides si aucune mesure dans la période)

    Raises:
        RetrievalError: Si toutes les fenêtres ont échoué
        FetchCancelled: Si la requête a été annulée
    """
    token = token or FetchToken()
    windows = split_range(start, end, max_days=max_days)
    results: List[Optional[ChannelData]] = [None] * len(windows)

    def run(i: int, lo: pd.Timestamp, hi: pd.Timestamp) -> None:
        if token.cancelled:
            return
        try:
            results[i] = fetch(channel_id, lo.strftime(ISO_FORMAT), hi.strftime(ISO_FORMAT))
        except RetrievalError as e:
            logger.warning(f"Canal {channel_id}: fenêtre {lo} → {hi} ignorée ({e})")

    futures: List[Future] = []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(windows)))) as pool:
        for i, (lo, hi) in enumerate(windows):
            fut = pool.submit(run, i, lo, hi)
            token.attach(fut)
            futures.append(fut)

    if token.cancelled:
        raise FetchCancelled(f"Requête annulée pour le canal {channel_id}")
    for fut in futures:
        # propage les erreurs inattendues (hors RetrievalError)
        fut.result()

    merged = merge_channel_data(results)
    if merged is None:
        raise RetrievalError(f"Aucune fenêtre récupérée pour le canal {channel_id}")
    return merged


class TelemetryFetcher:
    """Point d'entrée des récupérations: une nouvelle requête annule la précédente."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.session = session or requests.Session()
        self.timeout = timeout
        self._current: Optional[FetchToken] = None
        self._lock = threading.Lock()

    def _fetch_window(self, channel_id: int, start_iso: str, end_iso: str) -> ChannelData:
        return fetch_window(channel_id, start_iso, end_iso, session=self.session, timeout=self.timeout)

    def cancel(self) -> None:
        with self._lock:
            if self._current is not None:
                self._current.cancel()

    def fetch(self, channel_id: int, start: pd.Timestamp, end: pd.Timestamp) -> ChannelData:
        token = FetchToken()
        with self._lock:
            if self._current is not None:
                self._current.cancel()
            self._current = token
        return fetch_range(channel_id, start, end, token=token, fetch=self._fetch_window)

    def latest(self, channel_id: int) -> ChannelData:
        return fetch_latest(channel_id, session=self.session, timeout=self.timeout)
