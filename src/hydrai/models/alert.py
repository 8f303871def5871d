"""Alert event model."""

from __future__ import annotations

import time

from pydantic import Field

from hydrai._constants import DEFAULT_ALERT_HORIZON, DEFAULT_BANNER_TTL_MS
from hydrai.models._base import HydraiBaseModel
from hydrai.models.prediction import ConsumptionLevel


def compose_alert_message(
    forecast_volume: float,
    level: ConsumptionLevel,
    active_seconds: float,
    *,
    label: str | None = None,
) -> str:
    """Build the notification body for a threshold alert.

    *label* is the server's wording for the level and wins over the
    normalized name when given.
    """
    if label:
        level_text = label
    else:
        level_text = level.label if level is not ConsumptionLevel.UNKNOWN else "unknown"
    return (
        f"You are about to consume {forecast_volume:.2f} liters\n"
        f"Your consumption level will be {level_text}\n"
        f"You have been using water for {active_seconds:g} seconds"
    )


class AlertEvent(HydraiBaseModel):
    """Server-signalled threshold alert.

    Superseded by a newer alert or expires after ``ttl_ms``.
    """

    forecast_volume_liters: float
    level: ConsumptionLevel
    active_seconds: float
    level_label: str | None = None
    horizon_seconds: int = DEFAULT_ALERT_HORIZON
    created_at: float = Field(default_factory=time.time)
    ttl_ms: int = Field(default=DEFAULT_BANNER_TTL_MS, gt=0)

    @property
    def message(self) -> str:
        return compose_alert_message(
            self.forecast_volume_liters, self.level, self.active_seconds, label=self.level_label
        )

    @property
    def banner_message(self) -> str:
        return f"ALERT!\n{self.message}"
