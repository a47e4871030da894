"""Module monitoring: surveillance périodique des niveaux."""

from station_pompage.monitoring.runner import latest_level_m, poll_once, run_monitoring

__all__ = ["latest_level_m", "poll_once", "run_monitoring"]
