"""Unit tests for payload normalization."""

from __future__ import annotations

from datetime import datetime, timezone

from models.payloads import AcuRitePayload, PurpleAirPayload
from models.records import ProviderType
from services.normalizer import normalize, normalize_acurite, normalize_purpleair


def _sample(happened_at: str, **raw_values) -> dict:
    return {"happened_at": happened_at, "raw_values": raw_values}


T0 = "2024-05-01T10:00:00Z"
T1 = "2024-05-01T11:00:00Z"


def test_purpleair_rows_are_zipped_against_fields() -> None:
    payload = PurpleAirPayload.parse(
        {
            "fields": ["time_stamp", "humidity", "temperature", "pm2.5_alt", "pressure", "voc"],
            "data": [
                [1714557600, 40, 71.5, 8.2, 852.1, 120],
                [1714558200, 41, 72.0, 9.0, 852.0, 118],
            ],
        }
    )

    readings = normalize_purpleair(payload)

    assert len(readings) == 2
    first = readings[0]
    assert first.timestamp == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert first.temperature == 71.5
    assert first.humidity == 40.0
    assert first.pm25 == 8.2
    assert first.pressure == 852.1
    assert first.wind_speed is None


def test_purpleair_rows_without_time_or_values_are_dropped() -> None:
    payload = PurpleAirPayload.parse(
        {
            "fields": ["time_stamp", "temperature"],
            "data": [
                [None, 70.0],
                [1714557600, None],
                [1714558200, "not-a-number"],
                [1714558800, 68.0],
            ],
        }
    )

    readings = normalize_purpleair(payload)

    assert [reading.temperature for reading in readings] == [68.0]


def test_purpleair_short_rows_use_available_columns() -> None:
    payload = PurpleAirPayload.parse(
        {"fields": ["time_stamp", "temperature", "humidity"], "data": [[1714557600, 65.0]]}
    )

    readings = normalize_purpleair(payload)

    assert len(readings) == 1
    assert readings[0].temperature == 65.0
    assert readings[0].humidity is None


def test_empty_payloads_yield_no_readings() -> None:
    assert normalize(ProviderType.purpleair, PurpleAirPayload.empty()) == []
    assert normalize(ProviderType.acurite, AcuRitePayload.empty()) == []
    assert normalize(ProviderType.purpleair, PurpleAirPayload.parse({"fields": [], "data": []})) == []
    assert normalize(ProviderType.acurite, AcuRitePayload.parse({})) == []


def test_mismatched_payload_type_yields_no_readings() -> None:
    assert normalize(ProviderType.acurite, PurpleAirPayload.empty()) == []


def test_acurite_channels_are_reassembled_per_time_index() -> None:
    payload = AcuRitePayload.parse(
        {
            "1": [_sample(T0, F=70), _sample(T1, F=72)],
            "2": [_sample(T0, RH=40), _sample(T1, RH=41)],
            "4": [_sample(T0, **{"": 180}), _sample(T1, **{"": 185})],
        }
    )

    readings = normalize_acurite(payload)

    assert len(readings) == 2
    assert [r.values() for r in readings] == [
        {
            "temperature": 70.0,
            "humidity": 40.0,
            "pressure": None,
            "pm25": None,
            "wind_speed": None,
            "wind_direction": 180.0,
            "rainfall": None,
        },
        {
            "temperature": 72.0,
            "humidity": 41.0,
            "pressure": None,
            "pm25": None,
            "wind_speed": None,
            "wind_direction": 185.0,
            "rainfall": None,
        },
    ]
    assert readings[0].timestamp == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert readings[1].timestamp == datetime(2024, 5, 1, 11, tzinfo=timezone.utc)


def test_acurite_rainfall_only_counts_on_its_channel() -> None:
    payload = AcuRitePayload.parse(
        {
            "7": [_sample(T0, IN=29.9, F=60)],
            "10": [_sample(T0, IN=0.25)],
        }
    )

    readings = normalize_acurite(payload)

    assert readings[0].rainfall == 0.25

    elsewhere = normalize_acurite(AcuRitePayload.parse({"7": [_sample(T0, IN=29.9, F=60)]}))
    assert elsewhere[0].rainfall is None
    assert elsewhere[0].temperature == 60.0


def test_acurite_wind_direction_only_counts_on_its_channel() -> None:
    payload = AcuRitePayload.parse({"5": [_sample(T0, **{"": 90}, MPH=4)]})

    readings = normalize_acurite(payload)

    assert readings[0].wind_direction is None
    assert readings[0].wind_speed == 4.0


def test_acurite_first_temperature_wins_and_humidity_takes_last() -> None:
    payload = AcuRitePayload.parse(
        {
            "1": [_sample(T0, F=70, RH=30)],
            "2": [_sample(T0, F=55, RH=45, HPA=1013)],
        }
    )

    reading = normalize_acurite(payload)[0]

    assert reading.temperature == 70.0
    assert reading.humidity == 45.0
    assert reading.pressure == 1013.0


def test_acurite_ragged_channels_stop_at_shortest() -> None:
    payload = AcuRitePayload.parse(
        {
            "1": [_sample(T0, F=70), _sample(T1, F=72)],
            "2": [_sample(T0, RH=40)],
        }
    )

    readings = normalize_acurite(payload)

    assert len(readings) == 1
    assert readings[0].temperature == 70.0


def test_acurite_timestamp_taken_from_first_channel_that_has_one() -> None:
    payload = AcuRitePayload.parse(
        {
            "1": [{"raw_values": {"F": 70}}],
            "2": [_sample(T1, RH=40)],
        }
    )

    readings = normalize_acurite(payload)

    assert readings[0].timestamp == datetime(2024, 5, 1, 11, tzinfo=timezone.utc)


def test_acurite_malformed_samples_are_skipped() -> None:
    payload = AcuRitePayload.parse(
        {
            "1": ["garbage", _sample(T1, F="n/a"), _sample(T1, F=None), _sample(T0, F=66)],
            "2": [None, {"happened_at": "yesterday"}, {"raw_values": []}, _sample(T0, RH=50)],
        }
    )

    readings = normalize_acurite(payload)

    assert len(readings) == 1
    assert readings[0].temperature == 66.0
    assert readings[0].humidity == 50.0


def test_acurite_reading_without_timestamp_is_discarded() -> None:
    payload = AcuRitePayload.parse({"1": [{"raw_values": {"F": 70}}]})

    assert normalize_acurite(payload) == []


def test_acurite_channel_without_sample_list_does_not_hide_others() -> None:
    payload = AcuRitePayload.parse({"1": [_sample(T0, F=70)], "2": None})

    readings = normalize_acurite(payload)

    assert len(readings) == 1
    assert readings[0].temperature == 70.0


def test_out_of_range_numbers_are_treated_as_missing() -> None:
    acurite = AcuRitePayload.parse({"1": [_sample(T0, F=10**400, RH=40)]})
    purpleair = PurpleAirPayload.parse(
        {"fields": ["time_stamp", "temperature", "humidity"], "data": [[1714557600, 10**400, 35]]}
    )

    (weather,) = normalize_acurite(acurite)
    (air,) = normalize_purpleair(purpleair)

    assert weather.temperature is None
    assert weather.humidity == 40.0
    assert air.temperature is None
    assert air.humidity == 35.0
