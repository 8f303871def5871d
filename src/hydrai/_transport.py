"""HTTP transport for the inference services."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from hydrai._constants import USER_AGENT
from hydrai._redact import redact_for_log
from hydrai.config import HydraiConfig
from hydrai.exceptions import HydraiTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`JsonTransport`) concrete.
    """

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        ...


class JsonTransport:
    """Bearer-authenticated JSON POST transport."""

    def __init__(
        self,
        config: HydraiConfig,
        http_session: aiohttp.ClientSession,
        *,
        token: str,
    ) -> None:
        self._config = config
        self._http = http_session
        self._token = token
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def post_json(self, endpoint: str, payload: Mapping[str, Any]) -> dict[str, Any]:
        """POST *payload* to *endpoint* and return the decoded JSON object."""
        headers: dict[str, str] = {
            "authorization": f"Bearer {self._token}",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        url = f"{self._config.api_base_url.rstrip('/')}{endpoint}"

        _logger.debug("POST %s", url)
        if self._config.api_trace_enabled:
            _logger.debug("POST %s headers=%s body=%s", endpoint, redact_for_log(headers), redact_for_log(payload))

        try:
            async with self._http.post(url, json=dict(payload), headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise HydraiTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except HydraiTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise HydraiTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc
        except ValueError as exc:
            raise HydraiTransportError(
                f"Undecodable response from {endpoint}: {exc}",
                endpoint=endpoint,
            ) from exc

        try:
            body = json.loads(text)
        except ValueError as exc:
            raise HydraiTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        if not isinstance(body, dict):
            raise HydraiTransportError(
                f"Response from {endpoint} is not a JSON object",
                endpoint=endpoint,
            )
        if self._config.api_trace_enabled:
            _logger.debug("Response %s body=%s", endpoint, redact_for_log(body))
        return body
