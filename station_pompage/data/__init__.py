"""Module data: récupération, fusion et prétraitement de la télémétrie."""

from station_pompage.data.loaders import (
    FetchToken,
    TelemetryFetcher,
    fetch_range,
    fetch_window,
    parse_feed_payload,
    split_range,
)
from station_pompage.data.merge import merge_channel_data
from station_pompage.data.preprocessing import levels_to_meters, moving_average, prepare_levels

__all__ = [
    "FetchToken",
    "TelemetryFetcher",
    "fetch_range",
    "fetch_window",
    "levels_to_meters",
    "merge_channel_data",
    "moving_average",
    "parse_feed_payload",
    "prepare_levels",
    "split_range",
]
