"""Tests for model parsing and feature derivation."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from hydrai.models.prediction import ConsumptionLevel, PredictionEntry, PredictionMap
from hydrai.models.telemetry import ClimateContext, FeatureRecord, Granularity, TelemetrySample


class TestConsumptionLevel:
    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("ideal", ConsumptionLevel.IDEAL),
            ("bajo", ConsumptionLevel.IDEAL),
            ("Normal", ConsumptionLevel.NORMAL),
            (" alto ", ConsumptionLevel.HIGH),
            ("high", ConsumptionLevel.HIGH),
            (2, ConsumptionLevel.HIGH),
            ("extreme", ConsumptionLevel.UNKNOWN),
            (9, ConsumptionLevel.UNKNOWN),
            (None, ConsumptionLevel.UNKNOWN),
            (True, ConsumptionLevel.UNKNOWN),
        ],
    )
    def test_from_label(self, label: object, expected: ConsumptionLevel) -> None:
        assert ConsumptionLevel.from_label(label) is expected

    def test_ordering(self) -> None:
        assert ConsumptionLevel.IDEAL < ConsumptionLevel.NORMAL < ConsumptionLevel.HIGH

    def test_label(self) -> None:
        assert ConsumptionLevel.HIGH.label == "high"


class TestFeatureRecord:
    def test_from_sample_uses_time_zone(self) -> None:
        when = datetime(2025, 3, 9, 23, 30, tzinfo=ZoneInfo("UTC"))
        sample = TelemetrySample(
            timestamp_seconds=when.timestamp(),
            active_seconds=30,
            cumulative_volume_liters=4.2,
            source_tag="arduino",
        )
        climate = ClimateContext(people=4, avg_temperature=25.0, avg_perceived_temperature=27.0, avg_humidity=40.0)

        record = FeatureRecord.from_sample(sample, climate, time_zone="America/Mexico_City")

        assert (record.day, record.hour, record.month) == (9, 17, 3)
        assert record.people == 4
        assert record.volume_liters == 4.2

    def test_sequence_row_order(self) -> None:
        record = FeatureRecord(
            active_seconds=30,
            volume_liters=4.2,
            avg_temperature=25.0,
            avg_perceived_temperature=27.0,
            avg_humidity=40.0,
            day=9,
            hour=17,
            month=3,
        )
        assert record.sequence_row(Granularity.HOUR) == [30, 17, 25.0, 27.0, 40.0, 9, 3]
        assert record.sequence_row(Granularity.DAY) == [30, 0, 25.0, 27.0, 40.0, 9, 3]

    def test_with_forecast_replaces_activity_and_volume(self) -> None:
        record = FeatureRecord(active_seconds=30, volume_liters=4.2, day=1, hour=0, month=1)
        forecast = record.with_forecast(6.5)
        assert forecast.active_seconds == 6.5
        assert forecast.volume_liters == 6.5
        assert record.active_seconds == 30


def test_prediction_map_lookup() -> None:
    predictions = PredictionMap.from_entries(
        [
            PredictionEntry(horizon_seconds=60, forecast_volume_liters=4.1),
            PredictionEntry(horizon_seconds=5, forecast_volume_liters=1.1),
        ]
    )
    assert predictions.horizons == (5, 60)
    assert 60 in predictions
    assert predictions.get(30) is None
    assert [entry.horizon_seconds for entry in predictions.values()] == [5, 60]


def test_sample_rejects_negative_volume() -> None:
    with pytest.raises(ValueError):
        TelemetrySample(timestamp_seconds=0, active_seconds=1, cumulative_volume_liters=-0.1, source_tag="arduino")
