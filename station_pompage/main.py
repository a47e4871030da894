"""Point d'entrée principal du paquet station_pompage."""

import logging
import sys
from typing import Optional, Sequence, Tuple

import pandas as pd

from station_pompage.analysis import AlertMonitor, derive_channel
from station_pompage.cli import parse_args
from station_pompage.core.channels import ChannelCatalog
from station_pompage.core.errors import RetrievalError
from station_pompage.core.settings import Settings
from station_pompage.data import TelemetryFetcher
from station_pompage.monitoring import run_monitoring
from station_pompage.notify import build_notifier
from station_pompage.output import daily_volumes_to_csv, print_flow_summary, processed_to_csv, write_csv

logger = logging.getLogger(__name__)


def resolve_period(start: str, end: Optional[str]) -> Tuple[pd.Timestamp, pd.Timestamp]:
    """Période demandée; sans fin explicite, jusqu'à 23:59:59 le jour du début.

    Example:
        >>> resolve_period("2025-01-01", None)
        (Timestamp('2025-01-01 00:00:00'), Timestamp('2025-01-01 23:59:59'))
    """
    t0 = pd.Timestamp(start)
    t1 = pd.Timestamp(end) if end else t0.normalize() + pd.Timedelta(hours=23, minutes=59, seconds=59)
    return t0, t1


def cmd_channels(catalog: ChannelCatalog) -> int:
    for ch in catalog.channels:
        flags = []
        if ch.can_derive_flow:
            flags.append(f"surface={ch.surface:g} m²")
        if ch.filtering_active:
            flags.append(f"filtre={ch.filter_window_size}")
        if ch.use_pump_flow:
            flags.append(f"pompes={len(ch.pumps)}")
        if ch.has_alert_thresholds:
            flags.append("alertes")
        print(f"{ch.id}\t{ch.name}\t{', '.join(flags)}")
    return 0


def cmd_flows(args, catalog: ChannelCatalog, settings: Settings, console_format: str) -> int:
    channel = catalog.get(args.channel)
    if channel is None:
        logger.error(f"Canal inconnu: {args.channel}")
        return 2
    start, end = resolve_period(args.start, args.end)
    fetcher = TelemetryFetcher(timeout=settings.http_timeout)
    try:
        data = fetcher.fetch(channel.id, start, end)
    except RetrievalError as e:
        logger.error(f"{channel.name}: {e}")
        print(e.user_message, file=sys.stderr)
        return 1

    result = derive_channel(data, channel)
    print_flow_summary(channel, result, console_format)
    if args.csv:
        write_csv(processed_to_csv(result.processed), args.csv)
    if args.daily_csv:
        write_csv(daily_volumes_to_csv(result.daily_volumes), args.daily_csv)
    return 0


def cmd_monitor(args, catalog: ChannelCatalog, settings: Settings, console_format: str) -> int:
    interval = args.interval_min if args.interval_min is not None else settings.monitor_interval_min
    monitor = AlertMonitor(catalog, build_notifier(settings), interval_minutes=interval)
    fetcher = TelemetryFetcher(timeout=settings.http_timeout)
    try:
        run_monitoring(
            catalog,
            monitor,
            fetcher.latest,
            interval_minutes=interval,
            max_iterations=1 if args.once else None,
            console_format=console_format,
        )
    except KeyboardInterrupt:
        logger.info("Surveillance interrompue par l'utilisateur")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse les arguments et exécute la sous-commande demandée."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = Settings.from_env()
    if args.timeout is not None:
        settings.http_timeout = args.timeout
    catalog = ChannelCatalog.from_file(args.channels_file or settings.channels_file)
    console_format = args.console_format or settings.console_format

    if args.command == "channels":
        return cmd_channels(catalog)
    if args.command == "flows":
        return cmd_flows(args, catalog, settings, console_format)
    return cmd_monitor(args, catalog, settings, console_format)


if __name__ == "__main__":
    sys.exit(main())
