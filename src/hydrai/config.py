"""Client configuration for hydrai."""

from __future__ import annotations

import dataclasses
import math
import os
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from hydrai._constants import (
    API_BASE_URL,
    DEFAULT_ALERT_HORIZON,
    DEFAULT_BANNER_TTL_MS,
    DEFAULT_FADE_MS,
    DEFAULT_HORIZONS,
    DEFAULT_RECONNECT_DELAY,
    DEFAULT_WINDOW_SIZE,
    WS_URL,
)
from hydrai.exceptions import HydraiConfigError
from hydrai.models.telemetry import Granularity


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _parse_horizons(value: str) -> tuple[int, ...]:
    try:
        return tuple(int(item) for item in value.split(",") if item.strip())
    except ValueError as exc:
        raise HydraiConfigError(f"Invalid horizon list: {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class HydraiConfig:
    """Client configuration.

    Parameters
    ----------
    ws_url : str
        Streaming endpoint (``wss://<host>/<path>``).  The bearer token is
        appended as the ``token`` query parameter on connect.
    api_base_url : str
        Base URL of the classifier and sequence-predictor services.
    reconnect_delay : float
        Fixed delay in seconds between a connection loss and the next
        connect attempt.  Retries are unbounded.
    connect_timeout : float
        Seconds to wait for the WebSocket handshake.
    heartbeat : float or None
        WebSocket ping interval in seconds, ``None`` to disable.
    request_timeout : float
        Total timeout in seconds for one inference HTTP call.
    granularity : Granularity
        Aggregation granularity sent to the inference services.  The
        hour-of-day feature is zeroed for :attr:`Granularity.DAY`.
    window_size : int
        Number of samples kept in the rolling window fed to the
        sequence predictor.
    horizons : tuple[int, ...]
        Candidate forecast horizons in seconds, in selection order.
    alert_horizon : int
        Forecast horizon the alert message is built from.
    banner_ttl_ms : int
        How long an in-app alert banner stays visible.
    fade_ms : int
        Duration of the banner fade in/out transitions.
    time_zone : str
        IANA time zone used to derive day/hour/month features from
        sample timestamps.
    inference_enabled : bool
        Run the local inference pipeline on each telemetry sample.
    api_trace_enabled : bool
        Log redacted request/response bodies of inference calls.
    """

    ws_url: str = WS_URL
    api_base_url: str = API_BASE_URL
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    connect_timeout: float = 10.0
    heartbeat: float | None = 30.0
    request_timeout: float = 15.0
    granularity: Granularity = Granularity.HOUR
    window_size: int = DEFAULT_WINDOW_SIZE
    horizons: tuple[int, ...] = DEFAULT_HORIZONS
    alert_horizon: int = DEFAULT_ALERT_HORIZON
    banner_ttl_ms: int = DEFAULT_BANNER_TTL_MS
    fade_ms: int = DEFAULT_FADE_MS
    time_zone: str = "UTC"
    inference_enabled: bool = True
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if not self.ws_url.startswith(("ws://", "wss://")):
            raise HydraiConfigError(f"ws_url must be a ws:// or wss:// URL, got {self.ws_url!r}")
        if not math.isfinite(self.reconnect_delay) or self.reconnect_delay < 0:
            raise HydraiConfigError("reconnect_delay must be a non-negative number")
        if self.window_size < 1:
            raise HydraiConfigError("window_size must be at least 1")
        if not self.horizons:
            raise HydraiConfigError("horizons must not be empty")
        if self.banner_ttl_ms <= 0:
            raise HydraiConfigError("banner_ttl_ms must be positive")
        if not isinstance(self.granularity, Granularity):
            try:
                object.__setattr__(self, "granularity", Granularity(self.granularity))
            except ValueError as exc:
                raise HydraiConfigError(f"Unknown granularity: {self.granularity!r}") from exc
        try:
            ZoneInfo(self.time_zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise HydraiConfigError(f"Unknown time zone: {self.time_zone!r}") from exc

    @classmethod
    def from_env(cls, **overrides: Any) -> HydraiConfig:
        """Create configuration from environment variables.

        Reads optional ``HYDRAI_*`` variables.  Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        HydraiConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "HYDRAI_WS_URL": "ws_url",
            "HYDRAI_API_BASE_URL": "api_base_url",
            "HYDRAI_GRANULARITY": "granularity",
            "HYDRAI_TIME_ZONE": "time_zone",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMERIC_MAP = {
            "HYDRAI_RECONNECT_DELAY": ("reconnect_delay", float),
            "HYDRAI_CONNECT_TIMEOUT": ("connect_timeout", float),
            "HYDRAI_REQUEST_TIMEOUT": ("request_timeout", float),
            "HYDRAI_WINDOW_SIZE": ("window_size", int),
            "HYDRAI_ALERT_HORIZON": ("alert_horizon", int),
            "HYDRAI_BANNER_TTL_MS": ("banner_ttl_ms", int),
        }
        for env_key, (field_name, convert) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = convert(val)
            except ValueError as exc:
                raise HydraiConfigError(f"{env_key} is not a valid number: {val!r}") from exc

        horizons_env = env.get("HYDRAI_HORIZONS")
        if horizons_env is not None and "horizons" not in overrides:
            config_kwargs["horizons"] = _parse_horizons(horizons_env)

        if "inference_enabled" not in overrides:
            config_kwargs["inference_enabled"] = _env_bool(env.get("HYDRAI_INFERENCE_ENABLED"), True)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("HYDRAI_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
