"""Telemetry samples and inference feature records."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from zoneinfo import ZoneInfo

from pydantic import Field

from hydrai.models._base import HydraiBaseModel


class Granularity(StrEnum):
    """Aggregation granularity understood by the inference services."""

    HOUR = "hora"
    DAY = "dia"


class TelemetrySample(HydraiBaseModel):
    """One sensor reading from the stream.

    ``active_seconds`` is the time water has been flowing in the current
    session and ``cumulative_volume_liters`` the total volume so far.
    """

    timestamp_seconds: float
    active_seconds: float = Field(ge=0)
    cumulative_volume_liters: float = Field(ge=0)
    source_tag: str


class ClimateContext(HydraiBaseModel):
    """Household and weather context joined onto each sample."""

    people: int = Field(default=1, ge=0)
    avg_temperature: float = 0.0
    avg_perceived_temperature: float = 0.0
    avg_humidity: float = 0.0


class FeatureRecord(HydraiBaseModel):
    """One row of classifier/predictor input."""

    active_seconds: float
    volume_liters: float
    people: int = 1
    avg_temperature: float = 0.0
    avg_perceived_temperature: float = 0.0
    avg_humidity: float = 0.0
    day: int = Field(ge=1, le=31)
    hour: int = Field(ge=0, le=23)
    month: int = Field(ge=1, le=12)

    @classmethod
    def from_sample(
        cls,
        sample: TelemetrySample,
        climate: ClimateContext,
        *,
        time_zone: str = "UTC",
    ) -> FeatureRecord:
        """Join *sample* with *climate*, deriving calendar features in *time_zone*."""
        when = datetime.fromtimestamp(sample.timestamp_seconds, tz=ZoneInfo(time_zone))
        return cls(
            active_seconds=sample.active_seconds,
            volume_liters=sample.cumulative_volume_liters,
            people=climate.people,
            avg_temperature=climate.avg_temperature,
            avg_perceived_temperature=climate.avg_perceived_temperature,
            avg_humidity=climate.avg_humidity,
            day=when.day,
            hour=when.hour,
            month=when.month,
        )

    def hour_for(self, granularity: Granularity) -> int:
        return 0 if granularity is Granularity.DAY else self.hour

    def sequence_row(self, granularity: Granularity) -> list[float]:
        """Feature vector fed to the sequence predictor.

        Order is fixed: active seconds, hour of day, average temperature,
        average perceived temperature, average humidity, day of month,
        month.
        """
        return [
            self.active_seconds,
            self.hour_for(granularity),
            self.avg_temperature,
            self.avg_perceived_temperature,
            self.avg_humidity,
            self.day,
            self.month,
        ]

    def with_forecast(self, forecast_volume: float) -> FeatureRecord:
        """Copy of this record with activity and volume replaced by *forecast_volume*."""
        return self.model_copy(update={"active_seconds": forecast_volume, "volume_liters": forecast_volume})
