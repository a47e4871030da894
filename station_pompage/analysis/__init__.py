"""Module analysis: calcul des débits et machine d'états des alertes."""

from station_pompage.analysis.alerts import AlertMonitor, build_event, step
from station_pompage.analysis.flow import (
    FlowCalculator,
    calculate_pump_flow,
    derive_channel,
    derive_flows,
    level_metrics,
    pump_flow_series,
)

__all__ = [
    "AlertMonitor",
    "FlowCalculator",
    "build_event",
    "calculate_pump_flow",
    "derive_channel",
    "derive_flows",
    "level_metrics",
    "pump_flow_series",
    "step",
]
