"""
Station de pompage - Débits, volumes et alertes de niveau pour stations de pompage.

Ce paquet fusionne la télémétrie ThingSpeak récupérée par fenêtres, en déduit
les débits d'entrée / sortie et les volumes journaliers, et surveille les
niveaux très haut, très bas et de débordement.
"""

__version__ = "1.0.0"
__author__ = "Station de pompage Team"

from station_pompage.core.models import AlertState, ChannelConfig, FlowResult

__all__ = ["AlertState", "ChannelConfig", "FlowResult", "__version__"]
