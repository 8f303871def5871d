"""Classifier and sequence-predictor endpoints."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import ValidationError

from hydrai._constants import CLASSIFY_ENDPOINT, PREDICT_ENDPOINT
from hydrai._transport import Transport
from hydrai.exceptions import HydraiInferenceError, HydraiTransportError
from hydrai.models.prediction import ConsumptionLevel
from hydrai.models.requests import (
    ClassifyFeatures,
    ClassifyRequest,
    ClassifyResponse,
    PredictRequest,
    PredictResponse,
)
from hydrai.models.telemetry import FeatureRecord, Granularity

_logger = logging.getLogger(__name__)


async def classify(
    transport: Transport,
    record: FeatureRecord,
    granularity: Granularity,
) -> ConsumptionLevel:
    """Classify one feature record into a consumption level."""
    request = ClassifyRequest(granularity=granularity, features=ClassifyFeatures.from_record(record, granularity))
    try:
        body = await transport.post_json(CLASSIFY_ENDPOINT, request.model_dump(mode="json", by_alias=True))
        response = ClassifyResponse.model_validate(body)
    except HydraiTransportError as exc:
        raise HydraiInferenceError(f"Classifier call failed: {exc}", stage="classify") from exc
    except ValidationError as exc:
        raise HydraiInferenceError(f"Classifier returned an invalid response: {exc}", stage="classify") from exc
    level = ConsumptionLevel(response.cluster)
    _logger.debug("Classified record as %s", level.label)
    return level


async def predict_sequence(
    transport: Transport,
    records: Sequence[FeatureRecord],
    granularity: Granularity,
) -> float:
    """Forecast the next volume from up to ``window_size`` records."""
    if not records:
        raise HydraiInferenceError("Cannot predict from an empty window", stage="predict")
    request = PredictRequest(
        sequence=[record.sequence_row(granularity) for record in records],
        granularity=granularity,
    )
    try:
        body = await transport.post_json(PREDICT_ENDPOINT, request.model_dump(mode="json", by_alias=True))
        response = PredictResponse.model_validate(body)
    except HydraiTransportError as exc:
        raise HydraiInferenceError(f"Sequence predictor call failed: {exc}", stage="predict") from exc
    except ValidationError as exc:
        raise HydraiInferenceError(f"Sequence predictor returned an invalid response: {exc}", stage="predict") from exc
    _logger.debug("Predicted %.3f liters from %d records", response.prediction, len(records))
    return response.prediction
