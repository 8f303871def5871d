"""Data models for hydrai."""

from hydrai.models._base import HydraiBaseModel, HydraiEnum
from hydrai.models.alert import AlertEvent, compose_alert_message
from hydrai.models.prediction import (
    ConsumptionLevel,
    HorizonReading,
    InferenceResult,
    PredictionEntry,
    PredictionMap,
)
from hydrai.models.telemetry import ClimateContext, FeatureRecord, Granularity, TelemetrySample

__all__ = [
    "AlertEvent",
    "ClimateContext",
    "ConsumptionLevel",
    "FeatureRecord",
    "Granularity",
    "HorizonReading",
    "HydraiBaseModel",
    "HydraiEnum",
    "InferenceResult",
    "PredictionEntry",
    "PredictionMap",
    "TelemetrySample",
    "compose_alert_message",
]
