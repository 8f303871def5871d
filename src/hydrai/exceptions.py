"""Custom exception hierarchy for hydrai."""

from __future__ import annotations


class HydraiError(Exception):
    """Base exception for all hydrai errors."""


class HydraiConfigError(HydraiError):
    """Invalid or missing configuration."""


class HydraiConnectionError(HydraiError):
    """Streaming connection failure.

    Transient by policy: the connection manager recovers from it through
    its reconnect loop, so it only reaches callers through explicit
    operations such as :meth:`hydrai.connection.ConnectionManager.send`.
    """


class NotConnectedError(HydraiConnectionError):
    """An outbound frame was sent while the stream is not connected."""


class HydraiSessionClosedError(HydraiConnectionError):
    """The connection was torn down and cannot be reused."""


class HydraiDecodeError(HydraiError):
    """An inbound frame could not be decoded.

    The frame is dropped; the connection is unaffected.
    """


class HydraiTransportError(HydraiError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class HydraiInferenceError(HydraiError):
    """One inference run failed.

    Aborts that run only.  Last-good outputs are retained and the
    pipeline reports itself as unavailable until the next successful run.
    """

    def __init__(self, message: str, *, stage: str = "") -> None:
        self.stage = stage
        super().__init__(message)


class HydraiSelectionError(HydraiError):
    """Invalid forecast horizon request.

    Horizon requests are clamped to the nearest valid candidate rather
    than rejected; this is only raised for an unusable candidate set.
    """
