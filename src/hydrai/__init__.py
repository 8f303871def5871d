"""hydrai - Async Python client for HydrAI real-time water consumption monitoring."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("hydrai")
except PackageNotFoundError:
    __version__ = "0+local"
from hydrai.alerts import AlertCoordinator, BannerPhase, LoggingNotifier
from hydrai.client import HydraiClient
from hydrai.config import HydraiConfig
from hydrai.connection import ConnectionManager
from hydrai.exceptions import (
    HydraiConfigError,
    HydraiConnectionError,
    HydraiDecodeError,
    HydraiError,
    HydraiInferenceError,
    HydraiSelectionError,
    HydraiSessionClosedError,
    HydraiTransportError,
    NotConnectedError,
)
from hydrai.horizon import PredictionHorizonSelector
from hydrai.inference import InferencePipeline, InferenceSnapshot, analyze_records
from hydrai.ingestion.decoder import TelemetryDecoder
from hydrai.models import (
    AlertEvent,
    ClimateContext,
    ConsumptionLevel,
    FeatureRecord,
    Granularity,
    HorizonReading,
    InferenceResult,
    PredictionEntry,
    PredictionMap,
    TelemetrySample,
)
from hydrai.state.bus import EventBus
from hydrai.state.events import ConnectionState, EventKind
from hydrai.state.store import MonitorSnapshot

__all__ = [
    "__version__",
    "AlertCoordinator",
    "AlertEvent",
    "BannerPhase",
    "ClimateContext",
    "ConnectionManager",
    "ConnectionState",
    "ConsumptionLevel",
    "EventBus",
    "EventKind",
    "FeatureRecord",
    "Granularity",
    "HorizonReading",
    "HydraiClient",
    "HydraiConfig",
    "HydraiConfigError",
    "HydraiConnectionError",
    "HydraiDecodeError",
    "HydraiError",
    "HydraiInferenceError",
    "HydraiSelectionError",
    "HydraiSessionClosedError",
    "HydraiTransportError",
    "InferencePipeline",
    "InferenceResult",
    "InferenceSnapshot",
    "LoggingNotifier",
    "MonitorSnapshot",
    "NotConnectedError",
    "PredictionEntry",
    "PredictionHorizonSelector",
    "PredictionMap",
    "TelemetryDecoder",
    "TelemetrySample",
    "analyze_records",
]
