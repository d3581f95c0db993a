"""Event bus publishing.

Events are posted to the bus API over HTTP with a machine-to-machine bearer
token. Tokens come from a client-credentials grant (directly against the
token endpoint, or through a proxy when one is configured) and are cached
for ``token_cache_time`` seconds or until they expire, whichever is sooner.
"""

import time
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from member_service.core.config import BusConfig
from member_service.core.constants import EVENT_MIME_TYPE, EVENT_ORIGINATOR
from member_service.core.exceptions import ExternalServiceError
from member_service.core.observability import trace_operation

SERVICE_NAME = "bus"
EVENTS_PATH = "/bus/events"


class BusEvent(BaseModel):
    """Envelope accepted by the bus API."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    topic: str = Field(min_length=1)
    originator: str = Field(min_length=1)
    timestamp: datetime
    mime_type: str = Field(alias="mime-type")
    payload: dict[str, Any]


class BusApiClient:
    """HTTP client for the bus API.

    Args:
        config: Token endpoint, credentials, bus URL and error topic.
        http_client: Optional preconfigured ``httpx.AsyncClient``.
    """

    def __init__(
        self, config: BusConfig, http_client: httpx.AsyncClient | None = None
    ) -> None:
        self.config = config
        self._http = http_client or httpx.AsyncClient(timeout=config.request_timeout)
        self._token: str | None = None
        self._token_expires_at = 0.0

    async def get_m2m_token(self) -> str:
        """Return a cached machine token, requesting a new one when stale.

        Raises:
            ExternalServiceError: If credentials are missing or the grant fails.
        """
        if self._token is not None and time.monotonic() < self._token_expires_at:
            return self._token

        config = self.config
        if not (config.auth0_url and config.auth0_client_id and config.auth0_client_secret):
            raise ExternalServiceError(
                "Machine token credentials are not configured", service=SERVICE_NAME
            )

        body: dict[str, str] = {
            "grant_type": "client_credentials",
            "client_id": config.auth0_client_id,
            "client_secret": config.auth0_client_secret,
            "audience": config.auth0_audience,
        }
        url = config.auth0_url
        if config.auth0_proxy_server_url:
            body["auth0_url"] = config.auth0_url
            url = config.auth0_proxy_server_url

        try:
            response = await self._http.post(url, json=body)
            response.raise_for_status()
            token_data = response.json()
            token = token_data["access_token"]
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            raise ExternalServiceError(
                "Failed to obtain machine token", service=SERVICE_NAME, cause=exc
            ) from exc

        lifetime = float(config.token_cache_time)
        if expires_in := token_data.get("expires_in"):
            lifetime = min(lifetime, float(expires_in))
        self._token = token
        self._token_expires_at = time.monotonic() + lifetime
        logger.debug("Obtained machine token valid for {}s", lifetime)
        return token

    async def post_event(self, event: BusEvent) -> None:
        """Post one event to the bus.

        Raises:
            ExternalServiceError: If the bus rejects the event or is unreachable.
        """
        token = await self.get_m2m_token()
        url = self.config.busapi_url.rstrip("/") + EVENTS_PATH
        try:
            with trace_operation("bus.post_event", topic=event.topic):
                response = await self._http.post(
                    url,
                    json=event.model_dump(mode="json", by_alias=True),
                    headers={"Authorization": f"Bearer {token}"},
                )
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ExternalServiceError(
                f"Failed to post event to topic {event.topic}",
                service=SERVICE_NAME,
                context={"topic": event.topic},
                cause=exc,
            ) from exc

        logger.info("Posted bus event to topic {}", event.topic)

    async def post_error(self, payload: Mapping[str, Any]) -> None:
        """Post an error report to the configured error topic."""
        await self.post_event(
            build_event(self.config.kafka_error_topic, payload)
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()


def build_event(topic: str, payload: Mapping[str, Any]) -> BusEvent:
    """Wrap ``payload`` in a bus envelope stamped with the current UTC time."""
    return BusEvent(
        topic=topic,
        originator=EVENT_ORIGINATOR,
        timestamp=datetime.now(UTC),
        mime_type=EVENT_MIME_TYPE,
        payload=dict(payload),
    )


class EventPublisher:
    """Posts member events, building the bus client on first use.

    Args:
        config: Bus configuration subset the client is built from.
    """

    def __init__(self, config: BusConfig) -> None:
        self.config = config
        self._client: BusApiClient | None = None

    def get_client(self) -> BusApiClient:
        """Return the bus client, constructing it on first use."""
        if self._client is None:
            self._client = BusApiClient(self.config)
            logger.info("Created bus API client for {}", self.config.busapi_url)
        return self._client

    async def post_bus_event(self, topic: str, payload: Mapping[str, Any]) -> None:
        """Publish ``payload`` on ``topic``.

        Raises:
            ExternalServiceError: If publishing fails.
        """
        await self.get_client().post_event(build_event(topic, payload))

    async def aclose(self) -> None:
        """Close the bus client if it was ever constructed."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
