"""Forecast horizon selection."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from hydrai._constants import DEFAULT_HORIZONS
from hydrai.exceptions import HydraiSelectionError
from hydrai.inference import InferenceSnapshot
from hydrai.models.prediction import ConsumptionLevel, HorizonReading
from hydrai.models.telemetry import TelemetrySample

_logger = logging.getLogger(__name__)

CURRENT_HORIZON = 0


class PredictionHorizonSelector:
    """Snap a requested horizon onto a discrete candidate set.

    Candidates keep their given order; ties between two equally close
    candidates go to the one listed first.
    """

    def __init__(self, candidates: Sequence[int] = DEFAULT_HORIZONS) -> None:
        if not candidates:
            raise HydraiSelectionError("At least one candidate horizon is required")
        if any(candidate < 0 for candidate in candidates):
            raise HydraiSelectionError(f"Candidate horizons must be non-negative: {tuple(candidates)}")
        self._candidates = tuple(int(candidate) for candidate in candidates)

    @property
    def candidates(self) -> tuple[int, ...]:
        return self._candidates

    def snap(self, requested: float) -> int:
        """Return the candidate nearest to *requested*.

        Out-of-range values clamp to the nearest end; NaN falls back to
        the first candidate.
        """
        if math.isnan(requested):
            _logger.debug("Horizon request is NaN; using %s", self._candidates[0])
            return self._candidates[0]
        requested = min(max(requested, min(self._candidates)), max(self._candidates))

        best = self._candidates[0]
        best_distance = abs(best - requested)
        for candidate in self._candidates[1:]:
            distance = abs(candidate - requested)
            if distance < best_distance:
                best, best_distance = candidate, distance
        return best

    def select(
        self,
        requested: float,
        snapshot: InferenceSnapshot,
        latest_sample: TelemetrySample | None = None,
    ) -> HorizonReading:
        """Resolve *requested* against the current outputs.

        Horizon ``0`` reads the current level and the measured cumulative
        volume.  Other horizons read the forecast map; a missing entry
        yields an unknown reading.
        """
        horizon = self.snap(requested)
        if horizon == CURRENT_HORIZON:
            return HorizonReading(
                requested=requested,
                horizon_seconds=horizon,
                is_current=True,
                volume_liters=latest_sample.cumulative_volume_liters if latest_sample is not None else None,
                level=snapshot.current_level if snapshot.current_level is not None else ConsumptionLevel.UNKNOWN,
            )

        entry = snapshot.predictions.get(horizon)
        if entry is None:
            return HorizonReading(requested=requested, horizon_seconds=horizon, is_current=False)
        return HorizonReading(
            requested=requested,
            horizon_seconds=horizon,
            is_current=False,
            volume_liters=entry.forecast_volume_liters,
            level=entry.forecast_level,
        )
