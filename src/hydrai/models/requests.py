"""Pydantic request/response models for the inference services.

Field aliases carry the wire names; Python attributes use snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from hydrai._constants import PREDICT_MODE
from hydrai.models.telemetry import FeatureRecord, Granularity


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
    )


class ClassifyFeatures(_WireModel):
    active_seconds: float = Field(alias="tiempoActivo")
    volume_liters: float = Field(alias="consumo")
    people: int = Field(alias="personas")
    avg_temperature: float = Field(alias="temperaturaProm")
    avg_perceived_temperature: float = Field(alias="sensacionProm")
    avg_humidity: float = Field(alias="humedadProm")
    day: int = Field(alias="dia")
    hour: int = Field(alias="hora")
    month: int = Field(alias="mes")

    @classmethod
    def from_record(cls, record: FeatureRecord, granularity: Granularity) -> ClassifyFeatures:
        return cls(
            active_seconds=record.active_seconds,
            volume_liters=record.volume_liters,
            people=record.people,
            avg_temperature=record.avg_temperature,
            avg_perceived_temperature=record.avg_perceived_temperature,
            avg_humidity=record.avg_humidity,
            day=record.day,
            hour=record.hour_for(granularity),
            month=record.month,
        )


class ClassifyRequest(_WireModel):
    granularity: Granularity = Field(alias="rango")
    features: ClassifyFeatures


class PredictRequest(_WireModel):
    sequence: list[list[float]] = Field(min_length=1)
    mode: str = Field(default=PREDICT_MODE, alias="modo")
    granularity: Granularity = Field(alias="rango")


class ClassifyResponse(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    cluster: int = Field(ge=0, le=2)


class PredictResponse(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    prediction: float = Field(allow_inf_nan=False)
