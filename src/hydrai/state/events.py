"""Typed stream events.

The decoder turns every inbound frame into a list of these tagged
variants.  Consumers dispatch on ``kind`` instead of probing optional
frame fields.
"""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from hydrai.models.alert import AlertEvent
from hydrai.models.prediction import ConsumptionLevel, InferenceResult, PredictionMap
from hydrai.models.telemetry import TelemetrySample


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class EventKind(StrEnum):
    SAMPLE = "sample"
    PREDICTIONS = "predictions"
    LEVEL = "level"
    ALERT = "alert"
    FORECAST_REPLY = "forecast_reply"
    DECODE_ERROR = "decode_error"
    CONNECTION_STATE = "connection_state"
    INFERENCE_RESULT = "inference_result"
    INFERENCE_ERROR = "inference_error"


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    observed_at: float = Field(default_factory=time.time)


class SampleEvent(_Event):
    kind: Literal[EventKind.SAMPLE] = EventKind.SAMPLE
    sample: TelemetrySample


class PredictionsEvent(_Event):
    """Server AI annotations: a full replacement forecast map."""

    kind: Literal[EventKind.PREDICTIONS] = EventKind.PREDICTIONS
    predictions: PredictionMap
    current_level: ConsumptionLevel


class LevelEvent(_Event):
    """Standalone consumption level pushed by the server."""

    kind: Literal[EventKind.LEVEL] = EventKind.LEVEL
    level: ConsumptionLevel
    label: str


class AlertSignalEvent(_Event):
    kind: Literal[EventKind.ALERT] = EventKind.ALERT
    alert: AlertEvent


class ForecastReplyEvent(_Event):
    """Reply to a one-off forecast request."""

    kind: Literal[EventKind.FORECAST_REPLY] = EventKind.FORECAST_REPLY
    forecast_volume_liters: float


class DecodeErrorEvent(_Event):
    kind: Literal[EventKind.DECODE_ERROR] = EventKind.DECODE_ERROR
    reason: str
    frame: str = ""


class ConnectionStateEvent(_Event):
    kind: Literal[EventKind.CONNECTION_STATE] = EventKind.CONNECTION_STATE
    state: ConnectionState
    previous: ConnectionState


class InferenceResultEvent(_Event):
    kind: Literal[EventKind.INFERENCE_RESULT] = EventKind.INFERENCE_RESULT
    result: InferenceResult


class InferenceErrorEvent(_Event):
    kind: Literal[EventKind.INFERENCE_ERROR] = EventKind.INFERENCE_ERROR
    stage: str
    message: str


DecodedEvent = Annotated[
    SampleEvent | PredictionsEvent | LevelEvent | AlertSignalEvent | ForecastReplyEvent | DecodeErrorEvent,
    Field(discriminator="kind"),
]
"""Events the decoder may produce from a single frame."""

StreamEvent = Annotated[
    SampleEvent
    | PredictionsEvent
    | LevelEvent
    | AlertSignalEvent
    | ForecastReplyEvent
    | DecodeErrorEvent
    | ConnectionStateEvent
    | InferenceResultEvent
    | InferenceErrorEvent,
    Field(discriminator="kind"),
]
"""Every event published on the client's event bus."""
