"""High-level async client for HydrAI real-time monitoring."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from hydrai._constants import CLIENT_SOURCE
from hydrai._transport import JsonTransport, Transport
from hydrai.alerts import AlertCoordinator, BannerRenderer, Notifier
from hydrai.config import HydraiConfig
from hydrai.connection import ConnectionManager, WsConnect
from hydrai.exceptions import HydraiError
from hydrai.horizon import PredictionHorizonSelector
from hydrai.inference import InferencePipeline
from hydrai.ingestion.decoder import TelemetryDecoder
from hydrai.models.prediction import HorizonReading, InferenceResult
from hydrai.models.telemetry import ClimateContext, FeatureRecord
from hydrai.state.bus import EventBus
from hydrai.state.events import (
    AlertSignalEvent,
    ConnectionState,
    ConnectionStateEvent,
    DecodeErrorEvent,
    PredictionsEvent,
    SampleEvent,
    StreamEvent,
)
from hydrai.state.store import MonitorSnapshot, StateStore

_logger = logging.getLogger(__name__)


class HydraiClient:
    """One monitoring session: stream connection, inference and alerts.

    Usage::

        async with HydraiClient(config, token=token) as client:
            client.bus.subscribe(print)
            await client.connect()
            ...

    All inbound frames pass through a single handler that decodes them
    and applies the resulting events in receipt order; it is the only
    writer of the rolling window, the forecast map and the monitor
    state.  Everything else reads :meth:`snapshot` or subscribes to
    :attr:`bus`.
    """

    def __init__(
        self,
        config: HydraiConfig,
        *,
        token: str,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        ws_connect: WsConnect | None = None,
        notifier: Notifier | None = None,
        banner: BannerRenderer | None = None,
        climate: ClimateContext | None = None,
    ) -> None:
        self._config = config
        self._token = token
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._ws_connect = ws_connect
        self._climate = climate or ClimateContext()

        self.bus = EventBus()
        self._decoder = TelemetryDecoder(alert_horizon=config.alert_horizon, alert_ttl_ms=config.banner_ttl_ms)
        self._store = StateStore()
        self._selector = PredictionHorizonSelector(config.horizons)
        self._alerts = AlertCoordinator(notifier=notifier, renderer=banner, fade_ms=config.fade_ms)
        self._pipeline: InferencePipeline | None = None
        self._connection: ConnectionManager | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HydraiClient:
        if self._http_session is None and (self._transport is None or self._ws_connect is None):
            self._http_session = aiohttp.ClientSession()
        if self._transport is None:
            assert self._http_session is not None  # noqa: S101
            self._transport = JsonTransport(self._config, self._http_session, token=self._token)

        self._pipeline = InferencePipeline(
            self._transport,
            granularity=self._config.granularity,
            window_size=self._config.window_size,
            on_event=self._publish,
        )
        self._connection = ConnectionManager(
            self._config,
            ws_connect=self._ws_connect or self._aiohttp_ws_connect,
            on_frame=self._on_frame,
            on_state=self._on_connection_state,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Tear the session down: stream, timers, pending runs and HTTP session."""
        if self._connection is not None:
            await self._connection.teardown()
        await self._alerts.close()
        if self._pipeline is not None:
            await self._pipeline.close()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    async def _aiohttp_ws_connect(self, url: str) -> aiohttp.ClientWebSocketResponse:
        assert self._http_session is not None  # noqa: S101
        async with asyncio.timeout(self._config.connect_timeout):
            return await self._http_session.ws_connect(url, heartbeat=self._config.heartbeat)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._require_connection().state

    @property
    def alerts(self) -> AlertCoordinator:
        return self._alerts

    @property
    def pipeline(self) -> InferencePipeline:
        return self._require_pipeline()

    @property
    def connection(self) -> ConnectionManager:
        return self._require_connection()

    async def connect(self) -> None:
        """Open the stream (no-op when already connected or connecting)."""
        await self._require_connection().connect(self._token)

    async def request_forecast(self, horizon_seconds: float) -> int:
        """Ask the server for a one-off forecast at the snapped horizon.

        Returns the horizon that was requested.  Raises
        :class:`hydrai.exceptions.NotConnectedError` when offline.
        """
        horizon = self._selector.snap(horizon_seconds)
        await self._require_connection().send({"source": CLIENT_SOURCE, "tiempo": horizon})
        self._store.mark_forecast_requested()
        return horizon

    def select_horizon(self, requested: float) -> HorizonReading:
        """Volume/level pair for the horizon nearest *requested*."""
        return self._selector.select(requested, self._require_pipeline().snapshot(), self._store.latest_sample)

    def set_climate(self, climate: ClimateContext) -> None:
        """Context joined onto subsequent samples."""
        self._climate = climate

    async def run_inference(self) -> InferenceResult | None:
        """Run the pipeline now over the current window."""
        return await self._require_pipeline().run_once()

    def snapshot(self) -> MonitorSnapshot:
        return self._store.snapshot(self._require_pipeline().snapshot())

    # ------------------------------------------------------------------
    # Single writer
    # ------------------------------------------------------------------

    def _on_frame(self, raw: str | bytes) -> None:
        for event in self._decoder.decode(raw):
            self._apply(event)

    def _apply(self, event: StreamEvent) -> None:
        pipeline = self._require_pipeline()

        if isinstance(event, SampleEvent):
            rejection = self._store.check_sample(event.sample)
            record: FeatureRecord | None = None
            if rejection is None:
                try:
                    record = FeatureRecord.from_sample(event.sample, self._climate, time_zone=self._config.time_zone)
                except (ValueError, KeyError, OverflowError, OSError) as exc:
                    rejection = f"cannot build feature record: {exc}"
            if record is None:
                _logger.warning("Dropping sample: %s", rejection)
                event = DecodeErrorEvent(reason=rejection or "sample rejected", observed_at=event.observed_at)
            else:
                pipeline.push(record)
                if self._config.inference_enabled:
                    pipeline.trigger()
        elif isinstance(event, PredictionsEvent):
            pipeline.apply_predictions(event.predictions, event.current_level)
        elif isinstance(event, AlertSignalEvent):
            self._alerts.handle(event.alert)

        self._publish(event)

    def _publish(self, event: StreamEvent) -> None:
        self._store.apply(event)
        self.bus.publish(event)

    def _on_connection_state(self, state: ConnectionState, previous: ConnectionState) -> None:
        self._publish(ConnectionStateEvent(state=state, previous=previous))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_pipeline(self) -> InferencePipeline:
        if self._pipeline is None:
            raise HydraiError("Client not initialized. Use 'async with HydraiClient(...) as client:'")
        return self._pipeline

    def _require_connection(self) -> ConnectionManager:
        if self._connection is None:
            raise HydraiError("Client not initialized. Use 'async with HydraiClient(...) as client:'")
        return self._connection
