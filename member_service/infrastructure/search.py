"""Search index client accessor.

``SearchClientProvider`` builds one ``AsyncOpenSearch`` client the first
time it is asked for and hands the same instance out afterwards. Hosts on a
managed AWS domain get TLS and SigV4 request signing with credentials read
from the ``AWS_*`` environment variables; any other host gets a plain
client.
"""

import re

from botocore.credentials import EnvProvider
from loguru import logger
from opensearchpy import AsyncHttpConnection, AsyncOpenSearch, AWSV4SignerAsyncAuth
from opensearchpy.exceptions import ImproperlyConfigured

from member_service.core.config import AwsConfig, SearchConfig
from member_service.core.constants import MANAGED_SEARCH_HOST_PATTERN
from member_service.core.exceptions import ExternalServiceError
from member_service.core.observability import trace_operation

SERVICE_NAME = "search"
AWS_SIGNING_SERVICE = "es"


def is_managed_host(host: str) -> bool:
    """Whether ``host`` points at a managed AWS search domain."""
    return re.match(MANAGED_SEARCH_HOST_PATTERN, host) is not None


class SearchClientProvider:
    """Lazily constructed, memoized search client.

    Args:
        search_config: Host, API version and index names.
        aws_config: Region used to sign requests to managed domains.
    """

    def __init__(self, search_config: SearchConfig, aws_config: AwsConfig) -> None:
        self.config = search_config
        self.region = aws_config.aws_region
        self._client: AsyncOpenSearch | None = None

    # opensearch-py has no per-client API version switch; the configured
    # version is reported in logs only
    @property
    def api_version(self) -> str:
        """API version the index is expected to speak."""
        return self.config.api_version

    @property
    def member_index(self) -> str:
        """Name of the member index."""
        return self.config.member_index

    @property
    def member_trait_index(self) -> str:
        """Name of the member trait index."""
        return self.config.member_trait_index

    def get_client(self) -> AsyncOpenSearch:
        """Return the search client, constructing it on first use.

        Raises:
            ExternalServiceError: If the client can not be configured.
        """
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def _build_client(self) -> AsyncOpenSearch:
        host = self.config.host
        managed = is_managed_host(host)
        try:
            if managed:
                client = self._build_managed_client(host)
            else:
                client = AsyncOpenSearch(hosts=[host])
        except (ImproperlyConfigured, ValueError) as exc:
            raise ExternalServiceError(
                f"Failed to configure search client for {host}",
                service=SERVICE_NAME,
                cause=exc,
            ) from exc

        logger.info(
            "Created {} search client for {} (api version {})",
            "managed" if managed else "self-hosted",
            host,
            self.api_version,
        )
        return client

    def _build_managed_client(self, host: str) -> AsyncOpenSearch:
        credentials = EnvProvider().load()
        if credentials is None:
            raise ImproperlyConfigured(
                "AWS credentials are not available in the environment"
            )
        url = host if "://" in host else f"https://{host}"
        return AsyncOpenSearch(
            hosts=[url],
            http_auth=AWSV4SignerAsyncAuth(
                credentials, self.region, AWS_SIGNING_SERVICE
            ),
            use_ssl=True,
            verify_certs=True,
            connection_class=AsyncHttpConnection,
        )

    async def ping(self) -> bool:
        """Report whether the search cluster answers."""
        with trace_operation("search.ping", host=self.config.host):
            return bool(await self.get_client().ping())

    async def close(self) -> None:
        """Close the client if it was ever constructed."""
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("Search client closed")
