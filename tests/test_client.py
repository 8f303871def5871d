from __future__ import annotations

import json

import pytest
from conftest import FakeConnector, FakeTransport, RecordingNotifier, wait_until

from hydrai.alerts import BannerPhase
from hydrai.client import HydraiClient
from hydrai.config import HydraiConfig
from hydrai.exceptions import HydraiError, NotConnectedError
from hydrai.models.prediction import ConsumptionLevel
from hydrai.models.telemetry import ClimateContext, FeatureRecord
from hydrai.state.events import ConnectionState, EventKind, StreamEvent

CLASSIFY = "/api/hydrai/classify"
PREDICT = "/api/hydrai/predict"


def _sensor_frame(active: float, volume: float, **extra: object) -> str:
    return json.dumps({"source": "arduino", "tiempo": active, "consumo": volume, **extra})


_AI_DATA = {
    "etiquetaActual": "normal",
    "predicciones": {
        "30": {"prediccion": 3.9, "etiqueta": "normal"},
        "60": {"prediccion": 4.1, "etiqueta": "alto"},
    },
}


@pytest.mark.asyncio
async def test_frames_flow_through_decoder_state_and_bus(connector: FakeConnector) -> None:
    config = HydraiConfig(ws_url="wss://hydrai.test/ws", reconnect_delay=0.05, inference_enabled=False)
    notifier = RecordingNotifier()
    events: list[StreamEvent] = []

    async with HydraiClient(
        config, token="tok", transport=FakeTransport({}), ws_connect=connector, notifier=notifier
    ) as client:
        client.bus.subscribe(events.append)
        await client.connect()
        assert client.state is ConnectionState.CONNECTED
        assert connector.urls == ["wss://hydrai.test/ws?token=tok"]

        connector.sockets[0].push(_sensor_frame(12, 3.4, AIData=_AI_DATA, notificacion=True))
        await wait_until(lambda: len(notifier.sent) == 1)

        kinds = [event.kind for event in events]
        assert kinds == [
            EventKind.CONNECTION_STATE,
            EventKind.CONNECTION_STATE,
            EventKind.SAMPLE,
            EventKind.PREDICTIONS,
            EventKind.ALERT,
        ]
        assert client.alerts.phase is BannerPhase.VISIBLE
        assert "4.10 liters" in notifier.sent[0][1]

        snapshot = client.snapshot()
        assert snapshot.connection_state is ConnectionState.CONNECTED
        assert snapshot.latest_sample is not None
        assert snapshot.latest_sample.cumulative_volume_liters == 3.4
        assert snapshot.inference.current_level is ConsumptionLevel.NORMAL
        assert snapshot.last_alert is not None

        reading = client.select_horizon(42)
        assert reading.horizon_seconds == 30
        assert reading.volume_liters == 3.9

        current = client.select_horizon(0)
        assert current.volume_liters == 3.4

    assert connector.sockets[0].closed
    assert client.alerts.phase is BannerPhase.HIDDEN


@pytest.mark.asyncio
async def test_regressing_sample_is_dropped(config: HydraiConfig, connector: FakeConnector) -> None:
    config = HydraiConfig(ws_url=config.ws_url, inference_enabled=False)
    events: list[StreamEvent] = []

    async with HydraiClient(config, token="tok", transport=FakeTransport({}), ws_connect=connector) as client:
        client.bus.subscribe(events.append, kinds={EventKind.SAMPLE, EventKind.DECODE_ERROR})
        await client.connect()

        ws = connector.sockets[0]
        ws.push(_sensor_frame(20, 5.0))
        ws.push(_sensor_frame(10, 5.5))
        await wait_until(lambda: len(events) == 2)

        assert [event.kind for event in events] == [EventKind.SAMPLE, EventKind.DECODE_ERROR]
        snapshot = client.snapshot()
        assert snapshot.latest_sample is not None
        assert snapshot.latest_sample.active_seconds == 20
        assert snapshot.decode_errors == 1
        assert len(snapshot.inference.window) == 1


@pytest.mark.asyncio
async def test_samples_trigger_inference(config: HydraiConfig, connector: FakeConnector) -> None:
    transport = FakeTransport({CLASSIFY: [{"cluster": 0}, {"cluster": 1}], PREDICT: [{"prediction": 2.5}]})
    climate = ClimateContext(people=2, avg_temperature=18.0, avg_perceived_temperature=17.0, avg_humidity=60.0)

    async with HydraiClient(config, token="tok", transport=transport, ws_connect=connector, climate=climate) as client:
        await client.connect()
        connector.sockets[0].push(_sensor_frame(5, 0.8))
        await wait_until(lambda: len(transport.calls) == 3)
        await client.pipeline.wait_idle()

        snapshot = client.snapshot().inference
        assert snapshot.current_level is ConsumptionLevel.IDEAL
        assert snapshot.forecast_volume_liters == 2.5
        assert snapshot.forecast_level is ConsumptionLevel.NORMAL
        assert transport.calls[0][1]["features"]["personas"] == 2
        assert transport.calls[0][1]["features"]["humedadProm"] == 60.0


@pytest.mark.asyncio
async def test_inference_failure_is_surfaced_as_state(config: HydraiConfig, connector: FakeConnector) -> None:
    transport = FakeTransport({CLASSIFY: [{"cluster": 0}], PREDICT: [{"prediction": "not a number"}]})
    events: list[StreamEvent] = []

    async with HydraiClient(config, token="tok", transport=transport, ws_connect=connector) as client:
        client.bus.subscribe(events.append, kinds={EventKind.INFERENCE_ERROR})
        await client.connect()
        connector.sockets[0].push(_sensor_frame(5, 0.8))
        await wait_until(lambda: len(events) == 1)

        snapshot = client.snapshot()
        assert not snapshot.inference.available
        assert snapshot.connection_state is ConnectionState.CONNECTED


@pytest.mark.asyncio
async def test_request_forecast_round_trip(config: HydraiConfig, connector: FakeConnector) -> None:
    async with HydraiClient(config, token="tok", transport=FakeTransport({}), ws_connect=connector) as client:
        with pytest.raises(NotConnectedError):
            await client.request_forecast(42)

        await client.connect()
        horizon = await client.request_forecast(42)

        assert horizon == 30
        assert json.loads(connector.sockets[0].sent[0]) == {"source": "client", "tiempo": 30}
        assert client.snapshot().forecast_pending

        connector.sockets[0].push(json.dumps({"prediccion": 3.25}))
        await wait_until(lambda: not client.snapshot().forecast_pending)
        assert client.snapshot().forecast_reply_liters == 3.25


@pytest.mark.asyncio
async def test_client_reconnects_after_server_close(config: HydraiConfig, connector: FakeConnector) -> None:
    states: list[StreamEvent] = []
    async with HydraiClient(config, token="tok", transport=FakeTransport({}), ws_connect=connector) as client:
        client.bus.subscribe(states.append, kinds={EventKind.CONNECTION_STATE})
        await client.connect()
        connector.sockets[0].server_close()

        await wait_until(lambda: connector.calls == 2 and client.state is ConnectionState.CONNECTED)

    assert [event.state for event in states] == [  # type: ignore[union-attr]
        ConnectionState.CONNECTING,
        ConnectionState.CONNECTED,
        ConnectionState.RECONNECTING,
        ConnectionState.CONNECTING,
        ConnectionState.CONNECTED,
        ConnectionState.DISCONNECTED,
    ]


def test_client_requires_context_manager(config: HydraiConfig) -> None:
    client = HydraiClient(config, token="tok", transport=FakeTransport({}))
    with pytest.raises(HydraiError):
        client.snapshot()


@pytest.mark.asyncio
async def test_unbuildable_sample_keeps_rest_of_frame(
    config: HydraiConfig, connector: FakeConnector, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _broken(*args: object, **kwargs: object) -> FeatureRecord:
        raise ValueError("timestamp out of range")

    monkeypatch.setattr(FeatureRecord, "from_sample", _broken)
    notifier = RecordingNotifier()
    events: list[StreamEvent] = []

    async with HydraiClient(
        config, token="tok", transport=FakeTransport({}), ws_connect=connector, notifier=notifier
    ) as client:
        client.bus.subscribe(
            events.append,
            kinds={EventKind.SAMPLE, EventKind.DECODE_ERROR, EventKind.PREDICTIONS, EventKind.ALERT},
        )
        await client.connect()
        connector.sockets[0].push(_sensor_frame(12, 3.4, AIData=_AI_DATA, notificacion=True))
        await wait_until(lambda: len(notifier.sent) == 1)

        assert [event.kind for event in events] == [
            EventKind.DECODE_ERROR,
            EventKind.PREDICTIONS,
            EventKind.ALERT,
        ]
        snapshot = client.snapshot()
        assert snapshot.decode_errors == 1
        assert snapshot.latest_sample is None
        assert snapshot.inference.predictions.horizons == (30, 60)
        assert snapshot.inference.window == ()
