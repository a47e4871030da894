"""Module output: export CSV et rendu console."""

from station_pompage.output.console import flow_summary, print_alert_state, print_flow_summary
from station_pompage.output.export import daily_volumes_to_csv, processed_to_csv, write_csv

__all__ = [
    "daily_volumes_to_csv",
    "flow_summary",
    "print_alert_state",
    "print_flow_summary",
    "processed_to_csv",
    "write_csv",
]
