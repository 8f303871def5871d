"""Consumption levels and forecast models."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from pydantic import Field

from hydrai.models._base import HydraiBaseModel, HydraiEnum

# Labels the backend and the classifier use for each level.
_LEVEL_LABELS: dict[str, int] = {
    "ideal": 0,
    "bajo": 0,
    "low": 0,
    "normal": 1,
    "alto": 2,
    "high": 2,
}


class ConsumptionLevel(HydraiEnum):
    """Categorical consumption label, ordered ``IDEAL < NORMAL < HIGH``.

    Member values match the classifier cluster ids.
    """

    UNKNOWN = -1
    IDEAL = 0
    NORMAL = 1
    HIGH = 2

    @classmethod
    def from_label(cls, label: Any) -> ConsumptionLevel:
        """Parse a server label (``"ideal"``, ``"bajo"``, ``"alto"``...) or cluster id."""
        if isinstance(label, bool):
            return cls.UNKNOWN
        if isinstance(label, int):
            return cls(label)
        if isinstance(label, str):
            return cls(_LEVEL_LABELS.get(label.strip().lower(), -1))
        return cls.UNKNOWN

    @property
    def label(self) -> str:
        return self.name.lower()


class PredictionEntry(HydraiBaseModel):
    """Forecast at one horizon.

    ``label`` keeps the server's own wording for the level (``"alto"``).
    """

    horizon_seconds: int = Field(ge=0)
    forecast_volume_liters: float
    forecast_level: ConsumptionLevel = ConsumptionLevel.UNKNOWN
    label: str | None = None


class PredictionMap(HydraiBaseModel):
    """Forecast entries keyed by horizon in seconds.

    Immutable; a new AI-bearing frame replaces the whole map.
    """

    entries: dict[int, PredictionEntry] = Field(default_factory=dict)

    @classmethod
    def from_entries(cls, entries: list[PredictionEntry]) -> PredictionMap:
        return cls(entries={entry.horizon_seconds: entry for entry in entries})

    def get(self, horizon_seconds: int) -> PredictionEntry | None:
        return self.entries.get(horizon_seconds)

    @property
    def horizons(self) -> tuple[int, ...]:
        return tuple(sorted(self.entries))

    def __contains__(self, horizon_seconds: object) -> bool:
        return horizon_seconds in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def values(self) -> Iterator[PredictionEntry]:
        return iter(self.entries[key] for key in self.horizons)


class HorizonReading(HydraiBaseModel):
    """Volume/level pair shown for the selected horizon.

    ``volume_liters`` is ``None`` and ``level`` is
    :attr:`ConsumptionLevel.UNKNOWN` when no forecast exists for the
    horizon.
    """

    requested: float
    horizon_seconds: int
    is_current: bool
    volume_liters: float | None = None
    level: ConsumptionLevel = ConsumptionLevel.UNKNOWN

    @property
    def is_known(self) -> bool:
        return self.volume_liters is not None


class InferenceResult(HydraiBaseModel):
    """Outputs of one complete inference run."""

    current_level: ConsumptionLevel
    forecast_volume_liters: float
    forecast_level: ConsumptionLevel
    window_length: int = Field(ge=1)
