import datetime as dt

import pandas as pd

from station_pompage.analysis.flow import derive_flows
from station_pompage.core.models import ChannelConfig, DailyVolume, ProcessedSample, TelemetrySample
from station_pompage.output import daily_volumes_to_csv, processed_to_csv, write_csv

HEADER = "Date;Heure;Niveau (m);Niveau filtré (m);Débit Entrée (m³/h);Débit Sortie (m³/h);Volume cumulé (m³)"


def test_processed_csv_format():
    rows = [
        ProcessedSample(pd.Timestamp("2025-03-07 08:05:09"), 1.23456, None, 0.0, 12.346, 3.0),
        ProcessedSample(pd.Timestamp("2025-03-07 08:20:00"), 1.2, 1.21728, 4.5, 0.0, 3.0),
    ]
    lines = processed_to_csv(rows).splitlines()
    assert lines[0] == HEADER
    assert lines[1] == "07/03/2025;08:05:09;1.235;;0.00;12.35;3.00"
    assert lines[2] == "07/03/2025;08:20:00;1.200;1.217;4.50;0.00;3.00"
    assert len(lines) == 3


def test_processed_csv_from_flow_result():
    ts = pd.date_range("2025-01-01", periods=4, freq="h")
    samples = [TelemetrySample(t, v) for t, v in zip(ts, [100.0, 150.0, 150.0, 100.0])]
    ch = ChannelConfig(id=1, name="x", surface=10.0, enable_flow_calculation=True)
    lines = processed_to_csv(derive_flows(samples, ch).processed).splitlines()
    assert lines[-1] == "01/01/2025;03:00:00;1.000;;0.00;10.00;15.00"


def test_daily_volumes_csv_format():
    content = daily_volumes_to_csv(
        [DailyVolume(dt.date(2025, 1, 1), 15.0), DailyVolume(dt.date(2025, 1, 2), 2.346)]
    )
    assert content == "Date;Volume (m³)\n01/01/2025;15.00\n02/01/2025;2.35\n"


def test_empty_exports_are_empty_strings():
    assert processed_to_csv([]) == ""
    assert daily_volumes_to_csv([]) == ""


def test_write_csv_creates_parent(tmp_path):
    out = write_csv("Date;Volume (m³)\n", str(tmp_path / "exports" / "volumes.csv"))
    assert out.exists()
    assert out.read_text(encoding="utf-8") == "Date;Volume (m³)\n"
