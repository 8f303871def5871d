"""Alert dispatch and in-app banner timing."""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Protocol

from hydrai._constants import ALERT_TITLE, DEFAULT_FADE_MS
from hydrai.models.alert import AlertEvent
from hydrai.models.prediction import ConsumptionLevel

_logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Local push notification sink."""

    async def dispatch(self, title: str, body: str) -> None:
        ...


class BannerRenderer(Protocol):
    """Draws the in-app banner; fade durations are in milliseconds."""

    def show(self, message: str, level: ConsumptionLevel, *, fade_ms: int) -> None:
        ...

    def hide(self, *, fade_ms: int) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes alerts to the log."""

    async def dispatch(self, title: str, body: str) -> None:
        _logger.info("%s %s", title, body.replace("\n", " | "))


class BannerPhase(StrEnum):
    HIDDEN = "hidden"
    VISIBLE = "visible"
    FADING_OUT = "fading_out"


class AlertCoordinator:
    """Turns alert events into a notification plus a timed banner.

    A new alert while the banner is up replaces its message and restarts
    the full display window.
    """

    def __init__(
        self,
        *,
        notifier: Notifier | None = None,
        renderer: BannerRenderer | None = None,
        fade_ms: int = DEFAULT_FADE_MS,
        title: str = ALERT_TITLE,
    ) -> None:
        self._notifier = notifier or LoggingNotifier()
        self._renderer = renderer
        self._fade_ms = fade_ms
        self._title = title

        self._phase = BannerPhase.HIDDEN
        self._alert: AlertEvent | None = None
        self._expires_at: float | None = None
        self._dismiss_handle: asyncio.TimerHandle | None = None
        self._fade_handle: asyncio.TimerHandle | None = None
        self._dispatches: set[asyncio.Task[None]] = set()

    @property
    def phase(self) -> BannerPhase:
        return self._phase

    @property
    def current(self) -> AlertEvent | None:
        """Alert shown by the banner, ``None`` once hidden."""
        return self._alert

    @property
    def remaining_ms(self) -> float:
        """Visible time left before the banner starts fading out."""
        if self._phase is not BannerPhase.VISIBLE or self._expires_at is None:
            return 0.0
        remaining = self._expires_at - asyncio.get_running_loop().time()
        return max(0.0, remaining * 1000.0)

    def handle(self, alert: AlertEvent) -> None:
        """Notify immediately and (re)show the banner for ``alert.ttl_ms``."""
        loop = asyncio.get_running_loop()

        task = loop.create_task(self._dispatch(alert))
        self._dispatches.add(task)
        task.add_done_callback(self._dispatches.discard)

        # Stale timers would dismiss the replacement early.
        self._cancel_timers()

        replacing = self._phase is not BannerPhase.HIDDEN
        self._alert = alert
        self._phase = BannerPhase.VISIBLE
        ttl_seconds = alert.ttl_ms / 1000.0
        self._expires_at = loop.time() + ttl_seconds
        self._dismiss_handle = loop.call_later(ttl_seconds, self._begin_dismiss)
        _logger.debug("Banner %s for %dms", "replaced" if replacing else "shown", alert.ttl_ms)

        if self._renderer is not None:
            self._renderer.show(alert.banner_message, alert.level, fade_ms=0 if replacing else self._fade_ms)

    async def close(self) -> None:
        """Cancel pending banner timers and in-flight notifications."""
        self._cancel_timers()
        self._phase = BannerPhase.HIDDEN
        self._alert = None
        self._expires_at = None
        pending = list(self._dispatches)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _dispatch(self, alert: AlertEvent) -> None:
        try:
            await self._notifier.dispatch(self._title, alert.message)
        except Exception:
            _logger.warning("Alert notification dispatch failed", exc_info=True)

    def _cancel_timers(self) -> None:
        for handle in (self._dismiss_handle, self._fade_handle):
            if handle is not None:
                handle.cancel()
        self._dismiss_handle = None
        self._fade_handle = None

    def _begin_dismiss(self) -> None:
        self._dismiss_handle = None
        self._phase = BannerPhase.FADING_OUT
        self._expires_at = None
        if self._renderer is not None:
            self._renderer.hide(fade_ms=self._fade_ms)
        self._fade_handle = asyncio.get_running_loop().call_later(self._fade_ms / 1000.0, self._finish_dismiss)

    def _finish_dismiss(self) -> None:
        self._fade_handle = None
        self._phase = BannerPhase.HIDDEN
        self._alert = None
        _logger.debug("Banner hidden")
