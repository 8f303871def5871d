"""In-memory monitor state.

Holds the latest sample and the server-pushed values that are not owned
by the inference pipeline.  Only the client's frame handler applies
events here.
"""

from __future__ import annotations

import logging

from pydantic import Field

from hydrai.inference import InferenceSnapshot
from hydrai.models._base import HydraiBaseModel
from hydrai.models.alert import AlertEvent
from hydrai.models.prediction import ConsumptionLevel
from hydrai.models.telemetry import TelemetrySample
from hydrai.state.events import (
    AlertSignalEvent,
    ConnectionState,
    ConnectionStateEvent,
    DecodeErrorEvent,
    ForecastReplyEvent,
    LevelEvent,
    SampleEvent,
    StreamEvent,
)

_logger = logging.getLogger(__name__)


class MonitorSnapshot(HydraiBaseModel):
    """Everything a UI needs to render one frame of the monitor."""

    connection_state: ConnectionState = ConnectionState.DISCONNECTED
    latest_sample: TelemetrySample | None = None
    reported_level: ConsumptionLevel | None = None
    forecast_reply_liters: float | None = None
    forecast_pending: bool = False
    last_alert: AlertEvent | None = None
    decode_errors: int = 0
    inference: InferenceSnapshot = Field(default_factory=InferenceSnapshot)


class StateStore:
    """Merge decoded stream events into the monitor state."""

    def __init__(self) -> None:
        self._connection_state = ConnectionState.DISCONNECTED
        self._latest: TelemetrySample | None = None
        self._reported_level: ConsumptionLevel | None = None
        self._forecast_reply: float | None = None
        self._forecast_pending = False
        self._last_alert: AlertEvent | None = None
        self._decode_errors = 0

    @property
    def latest_sample(self) -> TelemetrySample | None:
        return self._latest

    def check_sample(self, sample: TelemetrySample) -> str | None:
        """Return why *sample* must be rejected, or ``None`` to accept it."""
        latest = self._latest
        if latest is not None and sample.active_seconds < latest.active_seconds:
            return f"active seconds went backwards ({latest.active_seconds:g} -> {sample.active_seconds:g})"
        return None

    def mark_forecast_requested(self) -> None:
        self._forecast_pending = True

    def apply(self, event: StreamEvent) -> None:
        """Apply one event.  Events the store does not track are ignored."""
        if isinstance(event, SampleEvent):
            self._latest = event.sample
        elif isinstance(event, LevelEvent):
            self._reported_level = event.level
        elif isinstance(event, ForecastReplyEvent):
            self._forecast_reply = event.forecast_volume_liters
            self._forecast_pending = False
        elif isinstance(event, AlertSignalEvent):
            self._last_alert = event.alert
        elif isinstance(event, DecodeErrorEvent):
            self._decode_errors += 1
        elif isinstance(event, ConnectionStateEvent):
            self._connection_state = event.state
            if event.state is not ConnectionState.CONNECTED and self._forecast_pending:
                _logger.debug("Connection lost with a forecast request pending")
                self._forecast_pending = False

    def snapshot(self, inference: InferenceSnapshot) -> MonitorSnapshot:
        return MonitorSnapshot(
            connection_state=self._connection_state,
            latest_sample=self._latest,
            reported_level=self._reported_level,
            forecast_reply_liters=self._forecast_reply,
            forecast_pending=self._forecast_pending,
            last_alert=self._last_alert,
            decode_errors=self._decode_errors,
            inference=inference,
        )
