"""Catalogue statique des canaux et des groupes de destinataires."""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from station_pompage.core.models import ChannelConfig, EmailGroup, Pump

logger = logging.getLogger(__name__)


CHANNELS: List[ChannelConfig] = [
    ChannelConfig(id=2791635, name="SPTR Ajim", nth_threshold=3.2, ntb_threshold=1.5, email_group=1),
    ChannelConfig(id=2791703, name="MI_SRT3", email_group=1),
    ChannelConfig(id=2792378, name="Med_SPTR", email_group=1),
    ChannelConfig(id=2791830, name="SP4 Houmet Souk", email_group=1),
    ChannelConfig(id=2783757, name="SR3 midou", email_group=1),
    ChannelConfig(id=2796053, name="SP3 Houmet Souk", email_group=1),
    ChannelConfig(id=2783936, name="SRT5 Midoune", email_group=1),
    ChannelConfig(id=2782228, name="Midpun_SRJ2", email_group=1),
    ChannelConfig(
        id=2780154,
        name="GA_SR9",
        surface=12.75,
        enable_flow_calculation=True,
        enable_filtering=True,
        filter_window_size=2,
        email_group=2,
    ),
    ChannelConfig(
        id=2781182,
        name="GA_SR4",
        surface=19.6,
        enable_flow_calculation=True,
        enable_filtering=True,
        filter_window_size=5,
        email_group=2,
    ),
    ChannelConfig(
        id=2784626,
        name="SR4 Gabes",
        surface=19.6,
        enable_flow_calculation=True,
        use_pump_flow=True,
        pumps=(Pump(id=1, flow_rate=200.0), Pump(id=2, flow_rate=150.0)),
        email_group=2,
    ),
    ChannelConfig(
        id=2779959,
        name="GA_SP2",
        surface=8.5,
        enable_flow_calculation=True,
        enable_filtering=True,
        filter_window_size=3,
        email_group=2,
    ),
    ChannelConfig(id=2782219, name="SP1 Zarat", surface=8.1, enable_flow_calculation=True, email_group=2),
    ChannelConfig(id=2780092, name="SR4 El Hamma", surface=13.5, enable_flow_calculation=True, email_group=2),
    ChannelConfig(id=2779224, name="SR2 El Hamma", surface=13.5, enable_flow_calculation=True, email_group=2),
    ChannelConfig(id=2796008, name="KER_SPE1", surface=7.1, enable_flow_calculation=True, email_group=2),
    ChannelConfig(id=2784680, name="ss", email_group=1),
    ChannelConfig(id=2784692, name="RD6 Sidi Mehrez", email_group=1),
    ChannelConfig(id=2785670, name="SRT2_Midoune", email_group=1),
    ChannelConfig(id=2785177, name="RD4 Sidi Mehrez", email_group=1),
    ChannelConfig(id=2764879, name="SI_SR3", surface=12.5, enable_flow_calculation=True, email_group=3),
    ChannelConfig(id=2764887, name="SI_SP3", surface=28.5, enable_flow_calculation=True, email_group=3),
    ChannelConfig(
        id=2764860,
        name="RT_SP2",
        surface=10.5,
        enable_flow_calculation=True,
        enable_filtering=True,
        filter_window_size=15,
        email_group=3,
    ),
    ChannelConfig(
        id=2735740,
        name="Agareb Souelm",
        surface=20.5,
        enable_flow_calculation=True,
        enable_filtering=True,
        filter_window_size=15,
        email_group=3,
    ),
    ChannelConfig(
        id=2767732,
        name="SR3_agareb",
        surface=20.5,
        enable_flow_calculation=True,
        enable_filtering=True,
        filter_window_size=10,
        email_group=3,
    ),
    ChannelConfig(
        id=2767751,
        name="MA_SR2",
        surface=20.5,
        enable_flow_calculation=True,
        enable_filtering=True,
        filter_window_size=2,
        email_group=3,
    ),
    ChannelConfig(id=2770050, name="Saline", surface=25.5, enable_flow_calculation=True, email_group=3),
]

EMAIL_GROUPS: List[EmailGroup] = [
    EmailGroup(id=1, emails=("group1@example.com",)),
    EmailGroup(id=2, emails=("group2@example.com",)),
    EmailGroup(id=3, emails=("group3@example.com",)),
]


def channel_from_dict(raw: Dict) -> ChannelConfig:
    """Construit un ``ChannelConfig`` depuis un dictionnaire (clés camelCase ou snake_case).

    Args:
        raw: Entrée du fichier de configuration

    Returns:
        Configuration du canal

    Example:
        >>> ch = channel_from_dict({"id": 1, "name": "SR", "surface": 10, "enableFlowCalculation": True})
        >>> ch.can_derive_flow
        True
    """

    def pick(*keys, default=None):
        for k in keys:
            if k in raw and raw[k] is not None:
                return raw[k]
        return default

    pumps = tuple(
        Pump(id=int(p["id"]), flow_rate=float(_pump_flow_rate(p))) for p in (pick("pumps", default=[]) or [])
    )
    surface = pick("surface")
    window = pick("filterWindowSize", "filter_window_size")
    return ChannelConfig(
        id=int(raw["id"]),
        name=str(raw["name"]).strip(),
        surface=float(surface) if surface is not None else None,
        enable_flow_calculation=bool(pick("enableFlowCalculation", "enable_flow_calculation", default=False)),
        enable_filtering=bool(pick("enableFiltering", "enable_filtering", default=False)),
        filter_window_size=int(window) if window is not None else None,
        use_pump_flow=bool(pick("usePumpFlow", "use_pump_flow", default=False)),
        pumps=pumps,
        nth_threshold=_as_float(pick("nthThreshold", "nth_threshold")),
        ntb_threshold=_as_float(pick("ntbThreshold", "ntb_threshold")),
        overflow_threshold=_as_float(pick("overflowThreshold", "overflow_threshold")),
        email_group=_as_int(pick("emailGroup", "email_group")),
    )


def _pump_flow_rate(raw: Dict) -> float:
    return raw["flowRate"] if "flowRate" in raw else raw["flow_rate"]


def _as_float(value) -> Optional[float]:
    return float(value) if value is not None else None


def _as_int(value) -> Optional[int]:
    return int(value) if value is not None else None


def load_catalog(path: str) -> Tuple[List[ChannelConfig], List[EmailGroup]]:
    """Charge un catalogue JSON ``{"channels": [...], "emailGroups": [...]}``."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    channels = [channel_from_dict(c) for c in payload.get("channels", [])]
    groups = [
        EmailGroup(id=int(g["id"]), emails=tuple(g.get("emails", [])))
        for g in payload.get("emailGroups", payload.get("email_groups", []))
    ]
    logger.info(f"Catalogue chargé depuis {path}: {len(channels)} canaux, {len(groups)} groupes")
    return channels, groups


class ChannelCatalog:
    """Accès en lecture au catalogue des canaux et groupes de destinataires."""

    def __init__(self, channels: Iterable[ChannelConfig] = None, email_groups: Iterable[EmailGroup] = None):
        self.channels: List[ChannelConfig] = list(CHANNELS if channels is None else channels)
        self.email_groups: List[EmailGroup] = list(EMAIL_GROUPS if email_groups is None else email_groups)
        self._by_id = {c.id: c for c in self.channels}

    @classmethod
    def from_file(cls, path: Optional[str]) -> "ChannelCatalog":
        if not path:
            return cls()
        channels, groups = load_catalog(path)
        return cls(channels, groups)

    def get(self, channel_id: int) -> Optional[ChannelConfig]:
        return self._by_id.get(int(channel_id))

    def resolve_emails(self, group_id: Optional[int]) -> List[str]:
        """Adresses du groupe; liste vide si le groupe est inconnu."""
        for group in self.email_groups:
            if group.id == group_id:
                return list(group.emails)
        return []

    def monitored(self) -> List[ChannelConfig]:
        return [c for c in self.channels if c.has_alert_thresholds]
