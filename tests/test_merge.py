import pandas as pd

from station_pompage.core.models import ChannelData, TelemetrySample
from station_pompage.data.merge import dedupe_sorted, merge_channel_data


def _window(name, points, fields=None):
    fields = fields or {"field1": "Niveau"}
    return ChannelData(
        name=name,
        fields=fields,
        data={"field1": [TelemetrySample(pd.Timestamp(t), v) for t, v in points]},
    )


A = _window("SR9", [("2025-01-01 00:00", 100.0), ("2025-01-01 01:00", 110.0)])
B = _window(
    "SR9 bis",
    [("2025-01-01 01:00", 999.0), ("2025-01-01 02:00", 120.0)],
    fields={"field1": "Niveau bis"},
)


def _points(data):
    return [(s.timestamp, s.value) for s in data.data["field1"]]


def test_all_windows_failed_returns_none():
    assert merge_channel_data([None, None, None]) is None
    assert merge_channel_data([]) is None


def test_failed_windows_are_skipped():
    merged = merge_channel_data([None, A, None])
    assert _points(merged) == _points(A)


def test_labels_come_from_first_valid_window():
    merged = merge_channel_data([None, B, A])
    assert merged.name == "SR9 bis"
    assert merged.fields == {"field1": "Niveau bis"}


def test_overlap_is_deduplicated_and_sorted():
    merged = merge_channel_data([A, B])
    timestamps = [t for t, _ in _points(merged)]
    assert timestamps == sorted(set(timestamps))
    assert len(timestamps) == 3


def test_merge_is_independent_of_window_order_for_distinct_timestamps():
    c = _window("SR9", [("2025-01-02 00:00", 130.0)])
    assert _points(merge_channel_data([A, c])) == _points(merge_channel_data([c, A]))


def test_merge_is_independent_of_window_order_on_shared_boundary():
    # deux fenêtres contiguës renvoient la même mesure à la borne commune
    first = _window("SR9", [("2025-01-01 00:00", 100.0), ("2025-01-08 00:00", 140.0)])
    second = _window("SR9", [("2025-01-08 00:00", 140.0), ("2025-01-09 00:00", 150.0)])
    forward = merge_channel_data([first, second])
    backward = merge_channel_data([second, first])
    assert _points(forward) == _points(backward)
    assert [v for _, v in _points(forward)] == [100.0, 140.0, 150.0]


def test_merge_is_idempotent():
    once = merge_channel_data([A, B])
    twice = merge_channel_data([once, once])
    assert _points(twice) == _points(once)


def test_union_of_fields_across_windows():
    w = ChannelData(
        name="SR4",
        fields={"field1": "Niveau", "field3": "P1"},
        data={"field3": [TelemetrySample(pd.Timestamp("2025-01-01 00:00"), 1.0)]},
    )
    merged = merge_channel_data([A, w])
    assert set(merged.data) == {"field1", "field3"}
    # libellés de la première fenêtre
    assert merged.fields == {"field1": "Niveau"}


def test_dedupe_sorted_keeps_first_occurrence():
    t = pd.Timestamp("2025-01-01 00:00")
    out = dedupe_sorted(
        [
            TelemetrySample(t + pd.Timedelta(hours=1), 2.0),
            TelemetrySample(t, 1.0),
            TelemetrySample(t, 5.0),
        ]
    )
    assert [(s.timestamp, s.value) for s in out] == [(t, 1.0), (t + pd.Timedelta(hours=1), 2.0)]
