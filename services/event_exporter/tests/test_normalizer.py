import json
import re

import pytest

from event_exporter.exceptions import InvalidTimestamp
from event_exporter.normalizer import normalize, parse_timestamp
from event_exporter.schemas import RawEvent

UUID_SHAPE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{12}$")


def _event(**fields) -> RawEvent:
    fields.setdefault("event", "$pageview")
    fields.setdefault("now", "2021-05-04T10:20:30Z")
    return RawEvent.model_validate(fields)


def test_missing_identifier_is_generated() -> None:
    row = normalize(_event())
    assert row.id
    assert UUID_SHAPE.match(row.id)


def test_existing_identifier_is_kept() -> None:
    row = normalize(_event(uuid="0178a3ab-d163-0000-4b55-bceadebb03fa"))
    assert row.id == "0178a3ab-d163-0000-4b55-bceadebb03fa"

    blank = normalize(_event(uuid=""))
    assert UUID_SHAPE.match(blank.id)


def test_timestamp_falls_back_to_now() -> None:
    row = normalize(_event(now="2021-05-04T12:20:30+02:00"))
    assert row.timestamp == "2021-05-04T10:20:30.000Z"


def test_timestamp_precedence() -> None:
    row = normalize(
        _event(
            timestamp="2020-01-01T00:00:00Z",
            properties={"timestamp": "2020-02-02T00:00:00Z"},
            now="2020-03-03T00:00:00Z",
            sent_at="2020-04-04T00:00:00Z",
        )
    )
    assert row.timestamp == "2020-01-01T00:00:00.000Z"

    row = normalize(
        _event(properties={"timestamp": "2020-02-02T00:00:00Z"}, now="2020-03-03T00:00:00Z")
    )
    assert row.timestamp == "2020-02-02T00:00:00.000Z"

    row = normalize(_event(now=None, sent_at="2020-04-04T00:00:00.500Z"))
    assert row.timestamp == "2020-04-04T00:00:00.500Z"


def test_numeric_timestamp_is_epoch_milliseconds() -> None:
    assert parse_timestamp(1620123630000) == "2021-05-04T10:20:30.000Z"


def test_unparseable_or_missing_timestamp_raises() -> None:
    with pytest.raises(InvalidTimestamp):
        normalize(_event(timestamp="not a date"))
    with pytest.raises(InvalidTimestamp):
        normalize(_event(now=None))


def test_autocapture_moves_elements_out_of_properties() -> None:
    row = normalize(_event(event="$autocapture", properties={"$elements": [1, 2]}))
    assert row.elements == "[1,2]"
    assert row.properties == "{}"


def test_elements_stay_in_properties_for_other_events() -> None:
    row = normalize(_event(event="$pageview", properties={"$elements": [1, 2]}))
    assert row.elements == "[]"
    assert json.loads(row.properties) == {"$elements": [1, 2]}


def test_absent_fields_default_to_empty_encodings() -> None:
    row = normalize(_event())
    assert row.properties == "{}"
    assert row.elements == "[]"
    assert row.set_props == "{}"
    assert row.set_once_props == "{}"


def test_set_and_set_once_are_serialized() -> None:
    row = normalize(_event(**{"$set": {"email": "a@b.c"}, "$set_once": {}}))
    assert json.loads(row.set_props) == {"email": "a@b.c"}
    assert row.set_once_props == "{}"


def test_ip_prefers_properties_value() -> None:
    assert normalize(_event(properties={"$ip": "10.0.0.1"}, ip="10.0.0.2")).ip == "10.0.0.1"
    assert normalize(_event(ip="10.0.0.2")).ip == "10.0.0.2"
    assert normalize(_event()).ip is None


def test_passthrough_columns() -> None:
    row = normalize(
        _event(distinct_id="user-7", team_id=3, site_url="https://app.example.com")
    )
    assert row.event_name == "$pageview"
    assert row.distinct_id == "user-7"
    assert row.tenant_id == 3
    assert row.site_url == "https://app.example.com"


def test_non_finite_numbers_are_written_as_null() -> None:
    row = normalize(
        _event(
            event="$autocapture",
            properties={"x": float("nan"), "nested": {"y": [float("inf"), 1.5]},
                        "$elements": [float("-inf")]},
            **{"$set": {"z": float("nan")}},
        )
    )

    assert json.loads(row.properties) == {"x": None, "nested": {"y": [None, 1.5]}}
    assert json.loads(row.elements) == [None]
    assert json.loads(row.set_props) == {"z": None}
    assert "NaN" not in row.properties
    assert "Infinity" not in row.properties + row.elements
