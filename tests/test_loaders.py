import threading

import pandas as pd
import pytest
import requests

from station_pompage.core.errors import FetchCancelled, RetrievalError, TelemetryParseError
from station_pompage.core.models import ChannelData, TelemetrySample
from station_pompage.data import loaders
from station_pompage.data.loaders import (
    FetchToken,
    TelemetryFetcher,
    build_feed_url,
    fetch_range,
    fetch_window,
    parse_feed_payload,
    split_range,
)


def _payload(feeds, **channel):
    ch = {"id": 2780154, "name": "GA_SR9", "field1": "Niveau", "field3": "Pompe 1"}
    ch.update(channel)
    return {"channel": ch, "feeds": feeds}


def test_parse_feed_payload():
    data = parse_feed_payload(
        _payload(
            [
                {"created_at": "2025-01-01T00:00:00+01:00", "field1": "120.5", "field3": "1"},
                {"created_at": "2025-01-01T00:15:00+01:00", "field1": "121", "field3": None},
                {"created_at": "2025-01-01T00:30:00+01:00", "field1": "", "field3": "0"},
            ]
        )
    )
    assert data.name == "GA_SR9"
    assert data.fields == {"field1": "Niveau", "field3": "Pompe 1"}
    assert [s.value for s in data.data["field1"]] == [120.5, 121.0]
    assert [s.value for s in data.data["field3"]] == [1.0, 0.0]
    assert data.data["field1"][0].timestamp == pd.Timestamp("2025-01-01T00:00:00+01:00")


def test_parse_feed_payload_rejects_non_numeric_value():
    with pytest.raises(TelemetryParseError):
        parse_feed_payload(_payload([{"created_at": "2025-01-01T00:00:00Z", "field1": "abc"}]))
    with pytest.raises(TelemetryParseError):
        parse_feed_payload(_payload([{"created_at": "2025-01-01T00:00:00Z", "field1": "nan"}]))
    # un échec de parsing est un échec de récupération
    assert issubclass(TelemetryParseError, RetrievalError)


@pytest.mark.parametrize(
    "payload",
    [
        None,
        [],
        {},
        {"feeds": []},
        {"channel": {"name": "x"}},
        "-1",
        {"channel": "GA_SR9", "feeds": []},
        {"channel": {"name": "x", "field1": "Niveau"}, "feeds": "oops"},
        {"channel": {"name": "x", "field1": "Niveau"}, "feeds": {"created_at": "2025-01-01T00:00:00Z"}},
        {"channel": {"name": "x", "field1": "Niveau"}, "feeds": [None]},
        {"channel": {"name": "x", "field1": "Niveau"}, "feeds": [{"created_at": "2025-01-01T00:00:00Z"}, "ligne"]},
    ],
)
def test_parse_feed_payload_rejects_missing_envelope(payload):
    with pytest.raises(RetrievalError):
        parse_feed_payload(payload)


def test_parse_feed_payload_empty_feeds():
    data = parse_feed_payload(_payload([]))
    assert data.data == {"field1": [], "field3": []}


def test_split_range_windows_are_contiguous():
    start, end = pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-20")
    w = split_range(start, end)
    assert w == [
        (pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-08")),
        (pd.Timestamp("2025-01-08"), pd.Timestamp("2025-01-15")),
        (pd.Timestamp("2025-01-15"), pd.Timestamp("2025-01-20")),
    ]
    assert split_range(start, start) == [(start, start)]
    assert len(split_range(start, pd.Timestamp("2025-01-08"))) == 1


def test_split_range_invalid():
    with pytest.raises(ValueError):
        split_range(pd.Timestamp("2025-01-02"), pd.Timestamp("2025-01-01"))
    with pytest.raises(ValueError):
        split_range(pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-02"), max_days=0)


def test_build_feed_url_with_proxy():
    url = build_feed_url(5, {"results": 1}, base_url="https://api.thingspeak.com", proxy_url="")
    assert url == "https://api.thingspeak.com/channels/5/feeds.json?results=1"
    proxied = build_feed_url(5, {"results": 1}, base_url="https://api.thingspeak.com", proxy_url="https://p/?url=")
    assert proxied.startswith("https://p/?url=https%3A%2F%2Fapi.thingspeak.com%2Fchannels%2F5")


# --- récupération multi-fenêtres -------------------------------------------


HOURS = pd.date_range("2025-01-01", "2025-01-20", freq="6h")


def _fake_fetch(failing=()):
    calls = []
    lock = threading.Lock()

    def fetch(channel_id, start_iso, end_iso):
        lo, hi = pd.Timestamp(start_iso), pd.Timestamp(end_iso)
        with lock:
            calls.append((lo, hi))
        if lo in failing:
            raise RetrievalError(f"fenêtre {lo} en échec")
        samples = [TelemetrySample(t, float(i)) for i, t in enumerate(HOURS) if lo <= t <= hi]
        return ChannelData(name="GA_SR9", fields={"field1": "Niveau"}, data={"field1": samples})

    fetch.calls = calls
    return fetch


def test_fetch_range_merges_windows_without_duplicates():
    fetch = _fake_fetch()
    data = fetch_range(1, pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-20"), fetch=fetch)
    assert len(fetch.calls) == 3
    timestamps = [s.timestamp for s in data.data["field1"]]
    assert timestamps == list(HOURS)


def test_fetch_range_skips_failed_window():
    fetch = _fake_fetch(failing={pd.Timestamp("2025-01-08")})
    data = fetch_range(1, pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-20"), fetch=fetch)
    timestamps = [s.timestamp for s in data.data["field1"]]
    assert pd.Timestamp("2025-01-10") not in timestamps
    assert timestamps[0] == pd.Timestamp("2025-01-01")
    assert timestamps[-1] == pd.Timestamp("2025-01-20")
    # la borne partagée 2025-01-08 vient de la première fenêtre
    assert pd.Timestamp("2025-01-08") in timestamps


def test_fetch_range_drops_window_with_malformed_response():
    good = _payload(
        [
            {"created_at": "2025-01-01T00:00:00", "field1": "100"},
            {"created_at": "2025-01-02T00:00:00", "field1": "110"},
        ]
    )
    bad = _payload([None])

    def fetch(channel_id, start_iso, end_iso):
        return parse_feed_payload(good if start_iso.startswith("2025-01-01") else bad)

    data = fetch_range(1, pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-10"), fetch=fetch)
    assert [s.value for s in data.data["field1"]] == [100.0, 110.0]
    assert data.name == "GA_SR9"


def test_fetch_range_all_windows_failed():
    failing = {pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-08"), pd.Timestamp("2025-01-15")}
    with pytest.raises(RetrievalError):
        fetch_range(1, pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-20"), fetch=_fake_fetch(failing))


def test_fetch_range_propagates_unexpected_errors():
    def broken(channel_id, start_iso, end_iso):
        raise KeyError("bug")

    with pytest.raises(KeyError):
        fetch_range(1, pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-02"), fetch=broken)


def test_fetch_range_cancelled_token():
    token = FetchToken()
    token.cancel()
    fetch = _fake_fetch()
    with pytest.raises(FetchCancelled):
        fetch_range(1, pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-20"), token=token, fetch=fetch)
    assert fetch.calls == []


def test_fetcher_new_request_cancels_previous(monkeypatch):
    fetcher = TelemetryFetcher(session=object())
    tokens = []

    def fake_range(channel_id, start, end, token=None, fetch=None):
        tokens.append(token)
        return ChannelData(name="x")

    monkeypatch.setattr(loaders, "fetch_range", fake_range)
    fetcher.fetch(1, pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-02"))
    fetcher.fetch(2, pd.Timestamp("2025-01-01"), pd.Timestamp("2025-01-02"))
    assert tokens[0].cancelled
    assert not tokens[1].cancelled


# --- HTTP ------------------------------------------------------------------


class _Response:
    def __init__(self, payload=None, status=200, bad_json=False):
        self.payload = payload
        self.status = status
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value")
        return self.payload


class _Session:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.urls = []
        self.timeouts = []

    def get(self, url, timeout=None):
        self.urls.append(url)
        self.timeouts.append(timeout)
        if self.exc:
            raise self.exc
        return self.response


def test_fetch_window_requests_local_time_window():
    session = _Session(_Response(_payload([{"created_at": "2025-01-01T00:00:00+01:00", "field1": "100"}])))
    data = fetch_window(7, "2025-01-01T00:00:00", "2025-01-07T23:59:59", session=session, proxy_url="")
    assert [s.value for s in data.data["field1"]] == [100.0]
    url = session.urls[0]
    assert "/channels/7/feeds.json?" in url
    assert "start=2025-01-01T00%3A00%3A00" in url
    assert "timezone=" in url
    # pas de timeout par défaut
    assert session.timeouts == [None]


@pytest.mark.parametrize(
    "session",
    [
        _Session(_Response(status=500)),
        _Session(_Response(bad_json=True)),
        _Session(exc=requests.ConnectionError("offline")),
        _Session(_Response(payload={"error": "not found"})),
    ],
)
def test_fetch_window_failures_become_retrieval_errors(session):
    with pytest.raises(RetrievalError) as exc:
        fetch_window(7, "2025-01-01T00:00:00", "2025-01-02T00:00:00", session=session, proxy_url="")
    assert exc.value.user_message.startswith("Erreur lors de la récupération des données")


def test_fetch_window_is_not_retried():
    session = _Session(exc=requests.Timeout("timeout"))
    with pytest.raises(RetrievalError):
        fetch_window(7, "2025-01-01T00:00:00", "2025-01-02T00:00:00", session=session, timeout=5, proxy_url="")
    assert len(session.urls) == 1
    assert session.timeouts == [5]
