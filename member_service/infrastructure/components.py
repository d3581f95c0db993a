"""Process-wide holder for the external service clients.

The holder is built once in the application lifespan, stored on
``app.state`` and injected into handlers with the ``Components`` dependency.
"""

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request
from loguru import logger

from member_service.core.config import Settings
from member_service.infrastructure.bus import EventPublisher
from member_service.infrastructure.search import SearchClientProvider
from member_service.infrastructure.storage import PhotoStorage


@dataclass
class ServiceComponents:
    """Search accessor, photo storage and event publisher of one process."""

    search: SearchClientProvider
    storage: PhotoStorage
    events: EventPublisher

    @classmethod
    def from_settings(cls, settings: Settings) -> "ServiceComponents":
        """Wire the components from application settings.

        Clients are not connected here; each is created on first use.
        """
        return cls(
            search=SearchClientProvider(settings.search_config, settings.aws_config),
            storage=PhotoStorage(settings.aws_config, settings.member_config),
            events=EventPublisher(settings.bus_config),
        )

    async def aclose(self) -> None:
        """Release the clients that were constructed."""
        await self.search.close()
        await self.events.aclose()
        logger.info("Service components closed")


def get_components(request: Request) -> ServiceComponents:
    """FastAPI dependency returning the components of the running app."""
    components: ServiceComponents = request.app.state.components
    return components


Components = Annotated[ServiceComponents, Depends(get_components)]
