"""Stream frame decoder.

Maps one inbound frame to an ordered list of typed events.  Decoding is
total: a malformed frame yields a single :class:`DecodeErrorEvent` and no
other events, never an exception and never a partially populated sample.
The one exception is a notification whose alert-horizon forecast is
missing; its alert is replaced by a :class:`DecodeErrorEvent` and the
rest of the frame still applies.

Frame shape::

    {
        "source": "arduino",
        "tiempo": 12,               # active seconds
        "consumo": 3.4,             # cumulative liters
        "AIData": {                 # optional
            "etiquetaActual": "normal",
            "predicciones": {"60": {"prediccion": 4.1, "etiqueta": "alto"}, ...}
        },
        "nivelConsumo": "alto",     # optional
        "notificacion": true,       # optional, any truthy value
        "prediccion": 4.8           # optional, forecast request reply
    }
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from hydrai._constants import DEFAULT_ALERT_HORIZON, DEFAULT_BANNER_TTL_MS, SENSOR_SOURCE
from hydrai._redact import redact_for_log
from hydrai.ingestion.normalize import (
    FrameFieldError,
    parse_horizon_key,
    require_mapping,
    require_number,
    require_str,
)
from hydrai.models.alert import AlertEvent
from hydrai.models.prediction import ConsumptionLevel, PredictionEntry, PredictionMap
from hydrai.models.telemetry import TelemetrySample
from hydrai.state.events import (
    AlertSignalEvent,
    DecodedEvent,
    DecodeErrorEvent,
    ForecastReplyEvent,
    LevelEvent,
    PredictionsEvent,
    SampleEvent,
)

_logger = logging.getLogger(__name__)

_FRAME_PREVIEW = 200


def _preview(raw: Any) -> str:
    if isinstance(raw, (bytes, bytearray)):
        text = bytes(raw).decode("utf-8", errors="replace")
    elif isinstance(raw, str):
        text = raw
    else:
        text = repr(redact_for_log(raw))
    return text[:_FRAME_PREVIEW]


def _load_frame(raw: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FrameFieldError("frame is not valid UTF-8") from exc
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise FrameFieldError(f"frame is not JSON: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise FrameFieldError("frame JSON is not an object")
    return parsed


def _decode_predictions(ai_data: Mapping[str, Any]) -> tuple[PredictionMap, ConsumptionLevel]:
    current_level = ConsumptionLevel.from_label(require_str(ai_data, "etiquetaActual"))
    raw_predictions = require_mapping(ai_data, "predicciones")

    entries: list[PredictionEntry] = []
    for key, value in raw_predictions.items():
        if not isinstance(value, Mapping):
            raise FrameFieldError(f"prediction {key!r} is not an object")
        entries.append(
            PredictionEntry(
                horizon_seconds=parse_horizon_key(key),
                forecast_volume_liters=require_number(value, "prediccion"),
                forecast_level=ConsumptionLevel.from_label(value.get("etiqueta")),
                label=value["etiqueta"] if isinstance(value.get("etiqueta"), str) else None,
            )
        )
    return PredictionMap.from_entries(entries), current_level


class TelemetryDecoder:
    """Pure frame → events mapper.

    Parameters
    ----------
    alert_horizon : int
        Horizon (seconds) of the forecast entry an alert is derived from.
    alert_ttl_ms : int
        Display window stamped on derived alerts.
    """

    def __init__(
        self,
        *,
        alert_horizon: int = DEFAULT_ALERT_HORIZON,
        alert_ttl_ms: int = DEFAULT_BANNER_TTL_MS,
    ) -> None:
        self._alert_horizon = alert_horizon
        self._alert_ttl_ms = alert_ttl_ms

    def decode(
        self,
        raw: str | bytes | Mapping[str, Any],
        *,
        received_at: float | None = None,
    ) -> list[DecodedEvent]:
        """Decode *raw* into events in application order.

        *received_at* stamps samples and alerts (epoch seconds); it
        defaults to the current time.
        """
        observed = time.time() if received_at is None else received_at
        try:
            frame = _load_frame(raw)
            return self._decode_frame(frame, observed)
        except (FrameFieldError, ValidationError) as exc:
            reason = str(exc) if isinstance(exc, FrameFieldError) else f"invalid field value: {exc.errors()[0]['msg']}"
            _logger.debug("Dropping frame: %s", reason)
            return [DecodeErrorEvent(reason=reason, frame=_preview(raw), observed_at=observed)]
        except Exception:
            _logger.warning("Unexpected failure decoding frame", exc_info=True)
            return [DecodeErrorEvent(reason="unexpected decoder failure", frame=_preview(raw), observed_at=observed)]

    def _decode_frame(self, frame: Mapping[str, Any], observed: float) -> list[DecodedEvent]:
        events: list[DecodedEvent] = []

        sample: TelemetrySample | None = None
        if frame.get("source") == SENSOR_SOURCE:
            sample = TelemetrySample(
                timestamp_seconds=observed,
                active_seconds=require_number(frame, "tiempo"),
                cumulative_volume_liters=require_number(frame, "consumo"),
                source_tag=SENSOR_SOURCE,
            )
            events.append(SampleEvent(sample=sample, observed_at=observed))

        predictions: PredictionMap | None = None
        if frame.get("AIData") is not None:
            predictions, current_level = _decode_predictions(require_mapping(frame, "AIData"))
            events.append(PredictionsEvent(predictions=predictions, current_level=current_level, observed_at=observed))

        if frame.get("nivelConsumo") is not None:
            label = require_str(frame, "nivelConsumo")
            events.append(LevelEvent(level=ConsumptionLevel.from_label(label), label=label, observed_at=observed))

        if frame.get("prediccion") is not None:
            events.append(
                ForecastReplyEvent(forecast_volume_liters=require_number(frame, "prediccion"), observed_at=observed)
            )

        if frame.get("notificacion"):
            events.append(self._alert_event(frame, sample, predictions, observed))

        if not events:
            raise FrameFieldError("frame matches no known shape")
        return events

    def _alert_event(
        self,
        frame: Mapping[str, Any],
        sample: TelemetrySample | None,
        predictions: PredictionMap | None,
        observed: float,
    ) -> DecodedEvent:
        entry = predictions.get(self._alert_horizon) if predictions is not None else None
        if entry is None:
            return DecodeErrorEvent(
                reason=f"notification without a {self._alert_horizon}s forecast",
                frame=_preview(frame),
                observed_at=observed,
            )

        if sample is not None:
            active_seconds = sample.active_seconds
        elif "tiempo" in frame:
            active_seconds = require_number(frame, "tiempo")
        else:
            active_seconds = 0.0

        alert = AlertEvent(
            forecast_volume_liters=entry.forecast_volume_liters,
            level=entry.forecast_level,
            level_label=entry.label,
            active_seconds=active_seconds,
            horizon_seconds=self._alert_horizon,
            created_at=observed,
            ttl_ms=self._alert_ttl_ms,
        )
        return AlertSignalEvent(alert=alert, observed_at=observed)
