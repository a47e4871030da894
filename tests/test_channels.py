import json

import pytest

from station_pompage.core.channels import ChannelCatalog, channel_from_dict
from station_pompage.core.models import FieldRole, Pump


def test_builtin_catalog():
    catalog = ChannelCatalog()
    sr4 = catalog.get(2784626)
    assert sr4.name == "SR4 Gabes"
    assert sr4.pumps == (Pump(1, 200.0), Pump(2, 150.0))
    assert sr4.pump_field_keys() == ["field3", "field4"]
    assert catalog.get("2780154").filter_window_size == 2
    assert catalog.get(1) is None
    assert catalog.resolve_emails(2) == ["group2@example.com"]
    assert catalog.resolve_emails(99) == []
    assert catalog.resolve_emails(None) == []


def test_field_roles():
    ch = channel_from_dict({"id": 1, "name": "x", "pumps": [{"id": 1, "flowRate": 10}, {"id": 2, "flow_rate": 20}]})
    roles = ch.field_roles()
    assert roles["field1"] == (FieldRole.LEVEL, None)
    assert roles["field3"] == (FieldRole.PUMP_STATE, 0)
    assert roles["field4"] == (FieldRole.PUMP_STATE, 1)
    assert "field2" not in roles


def test_channel_from_dict_accepts_both_key_styles():
    camel = channel_from_dict(
        {
            "id": "10",
            "name": " SR ",
            "surface": 12,
            "enableFlowCalculation": True,
            "enableFiltering": True,
            "filterWindowSize": 3,
            "nthThreshold": 3.2,
            "ntbThreshold": 1.5,
            "overflowThreshold": 3.8,
            "emailGroup": 2,
        }
    )
    snake = channel_from_dict(
        {
            "id": 10,
            "name": "SR",
            "surface": 12.0,
            "enable_flow_calculation": True,
            "enable_filtering": True,
            "filter_window_size": 3,
            "nth_threshold": 3.2,
            "ntb_threshold": 1.5,
            "overflow_threshold": 3.8,
            "email_group": 2,
        }
    )
    assert camel == snake
    assert camel.has_alert_thresholds and camel.filtering_active and camel.can_derive_flow


def test_catalog_from_file(tmp_path):
    path = tmp_path / "canaux.json"
    path.write_text(
        json.dumps(
            {
                "channels": [
                    {"id": 1, "name": "A", "nthThreshold": 3, "ntbThreshold": 1, "overflowThreshold": 3.5, "emailGroup": 5}
                ],
                "emailGroups": [{"id": 5, "emails": ["a@example.com"]}],
            }
        ),
        encoding="utf-8",
    )
    catalog = ChannelCatalog.from_file(str(path))
    assert [c.id for c in catalog.monitored()] == [1]
    assert catalog.resolve_emails(5) == ["a@example.com"]


def test_catalog_from_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        ChannelCatalog.from_file(str(tmp_path / "absent.json"))
    assert len(ChannelCatalog.from_file(None).channels) == len(ChannelCatalog().channels)
