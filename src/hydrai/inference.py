"""Two-stage inference pipeline.

Each run makes three sequential calls over a snapshot of the rolling
window:

1. classify the latest record → current level
2. predict the next volume from the window → forecast volume
3. classify the latest record with activity/volume replaced by the
   forecast → forecast level

Step 3 depends on step 2.  A run either commits all three outputs or
none of them; a failed run marks the pipeline unavailable and keeps the
last good values.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Sequence

from pydantic import Field

from hydrai._api.inference import classify, predict_sequence
from hydrai._constants import DEFAULT_WINDOW_SIZE
from hydrai._transport import Transport
from hydrai.exceptions import HydraiInferenceError
from hydrai.models._base import HydraiBaseModel
from hydrai.models.prediction import ConsumptionLevel, InferenceResult, PredictionMap
from hydrai.models.telemetry import FeatureRecord, Granularity
from hydrai.state.events import InferenceErrorEvent, InferenceResultEvent, StreamEvent

_logger = logging.getLogger(__name__)


class InferenceSnapshot(HydraiBaseModel):
    """Read-only view of the pipeline outputs."""

    current_level: ConsumptionLevel | None = None
    forecast_volume_liters: float | None = None
    forecast_level: ConsumptionLevel | None = None
    predictions: PredictionMap = Field(default_factory=PredictionMap)
    window: tuple[FeatureRecord, ...] = ()
    available: bool = True
    running: bool = False
    last_error: str | None = None


async def analyze_records(
    transport: Transport,
    records: Sequence[FeatureRecord],
    granularity: Granularity,
) -> InferenceResult:
    """Run the three-call protocol over *records* (oldest first).

    Raises :class:`HydraiInferenceError` when any call fails; later
    calls are not attempted.
    """
    if not records:
        raise HydraiInferenceError("No records to analyze", stage="window")
    latest = records[-1]
    current_level = await classify(transport, latest, granularity)
    forecast_volume = await predict_sequence(transport, records, granularity)
    forecast_level = await classify(transport, latest.with_forecast(forecast_volume), granularity)
    return InferenceResult(
        current_level=current_level,
        forecast_volume_liters=forecast_volume,
        forecast_level=forecast_level,
        window_length=len(records),
    )


class InferencePipeline:
    """Owns the rolling window, the server forecast map and the inference outputs.

    Mutators (:meth:`push`, :meth:`apply_predictions`) must only be
    called from the client's frame handler.  :meth:`trigger` schedules a
    run; triggers that arrive while a run is in flight collapse into one
    follow-up run over the newest window.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        granularity: Granularity = Granularity.HOUR,
        window_size: int = DEFAULT_WINDOW_SIZE,
        on_event: Callable[[StreamEvent], None] | None = None,
    ) -> None:
        self._transport = transport
        self._granularity = granularity
        self._window: deque[FeatureRecord] = deque(maxlen=window_size)
        self._on_event = on_event

        self._predictions = PredictionMap()
        self._current_level: ConsumptionLevel | None = None
        self._forecast_volume: float | None = None
        self._forecast_level: ConsumptionLevel | None = None
        self._available = True
        self._last_error: str | None = None

        self._lock = asyncio.Lock()
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._rerun = False

    # ------------------------------------------------------------------
    # Single-writer mutation
    # ------------------------------------------------------------------

    def push(self, record: FeatureRecord) -> None:
        self._window.append(record)

    def apply_predictions(self, predictions: PredictionMap, current_level: ConsumptionLevel) -> None:
        """Replace the server forecast map wholesale."""
        self._predictions = predictions
        self._current_level = current_level

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def trigger(self) -> None:
        """Schedule a run, or a single follow-up if one is in flight."""
        if self._task is not None and not self._task.done():
            self._rerun = True
            return
        self._task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while True:
            self._rerun = False
            await self.run_once()
            if not self._rerun:
                return

    async def run_once(self) -> InferenceResult | None:
        """Run the pipeline over the current window.

        Returns the committed result, or ``None`` when the window is empty
        or the run failed.
        """
        async with self._lock:
            window = tuple(self._window)
            if not window:
                return None

            self._running = True
            try:
                result = await analyze_records(self._transport, window, self._granularity)
            except HydraiInferenceError as exc:
                self._fail(exc.stage or "unknown", str(exc))
                return None
            except Exception as exc:
                _logger.debug("Unexpected inference failure", exc_info=True)
                self._fail("unknown", f"{type(exc).__name__}: {exc}")
                return None
            finally:
                self._running = False

            self._current_level = result.current_level
            self._forecast_volume = result.forecast_volume_liters
            self._forecast_level = result.forecast_level
            self._available = True
            self._last_error = None
            _logger.debug(
                "Inference committed current=%s forecast=%.3f/%s",
                result.current_level.label,
                result.forecast_volume_liters,
                result.forecast_level.label,
            )
            self._emit(InferenceResultEvent(result=result))
            return result

    async def wait_idle(self) -> None:
        """Wait until scheduled runs (including follow-ups) have finished."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)

    async def close(self) -> None:
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _fail(self, stage: str, message: str) -> None:
        self._available = False
        self._last_error = message
        _logger.warning("Inference run aborted at %s: %s", stage, message)
        self._emit(InferenceErrorEvent(stage=stage, message=message))

    def _emit(self, event: StreamEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def available(self) -> bool:
        return self._available

    @property
    def predictions(self) -> PredictionMap:
        return self._predictions

    def snapshot(self) -> InferenceSnapshot:
        return InferenceSnapshot(
            current_level=self._current_level,
            forecast_volume_liters=self._forecast_volume,
            forecast_level=self._forecast_level,
            predictions=self._predictions,
            window=tuple(self._window),
            available=self._available,
            running=self._running,
            last_error=self._last_error,
        )
