"""Ingestion layer: inbound stream frames to typed events."""

from hydrai.ingestion.decoder import TelemetryDecoder

__all__ = ["TelemetryDecoder"]
