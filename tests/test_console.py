import json

import pandas as pd

from station_pompage.analysis.flow import derive_flows
from station_pompage.core.models import AlertState, ChannelConfig, TelemetrySample
from station_pompage.output import flow_summary, print_alert_state, print_flow_summary

CH = ChannelConfig(id=5, name="SR Essai", surface=10.0, enable_flow_calculation=True)


def _result():
    ts = pd.date_range("2025-01-01", periods=4, freq="h")
    return derive_flows([TelemetrySample(t, v) for t, v in zip(ts, [100.0, 150.0, 150.0, 100.0])], CH)


def test_flow_summary():
    s = flow_summary(CH, _result())
    assert s["n_samples"] == 4
    assert s["current_level_m"] == 1.0
    assert s["average_level_m"] == 1.25
    assert s["max_level_m"] == 1.5
    assert s["volume_index_m3"] == 15.0
    assert s["daily_volumes"] == [{"date": "2025-01-01", "volume_m3": 15.0}]
    assert s["pump_flow_m3h"] is None


def test_print_flow_summary_formats(capsys):
    print_flow_summary(CH, _result(), "json")
    assert json.loads(capsys.readouterr().out)["average_q_entree_m3h"] == 5.0

    print_flow_summary(CH, _result(), "plain")
    out = capsys.readouterr().out
    assert "Volume sorti cumulé (m³): 15.00" in out
    assert "Niveau (m): actuel 1.000 | moyen 1.250 | max 1.500" in out

    print_flow_summary(CH, _result(), "rich")
    out = capsys.readouterr().out
    assert "SR Essai" in out
    assert "Niveau moyen (m)" in out and "Niveau max (m)" in out


def test_flow_summary_empty_period():
    s = flow_summary(CH, derive_flows([], CH))
    assert (s["current_level_m"], s["average_level_m"], s["max_level_m"]) == (None, None, None)


def test_print_alert_state(capsys):
    state = AlertState(is_nth=True, is_overflowing=True, overflow_count=1, overflow_duration=4.0)
    print_alert_state(CH, state, 3.6, "plain")
    out = capsys.readouterr().out
    assert "NTH=True" in out and "(1, 4 min)" in out

    print_alert_state(CH, AlertState(), None, "json")
    assert json.loads(capsys.readouterr().out)["level_m"] is None
