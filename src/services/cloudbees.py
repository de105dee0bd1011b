"""
CloudBees API client.

Сейчас клиент умеет только одно: подтвердить, что учётные данные инстанса
принимаются сервером. Для этого делается один запрос к whoAmI endpoint
(Jenkins/CloudBees CI) с basic auth ``userId:apiKey``.
"""

import time

import httpx

from src.domain.config import IntegrationConfig
from src.domain.errors import ProviderAuthenticationError, ProviderTransportError
from src.logger.logger import get_logger
from src.logger.types import Category, duration_ms, param

DEFAULT_TIMEOUT = 30.0


def normalize_base_url(hostname: str) -> str:
    """Prepend ``https://`` when no scheme is given and strip trailing slashes."""
    base = hostname.strip()
    if "://" not in base:
        base = f"https://{base}"
    return base.rstrip("/")


class APIClient:
    """
    Authenticated client for a CloudBees operations center.

    Stateless: every call opens its own ``httpx.AsyncClient`` and closes it
    before returning, so clients built for different configurations never
    share connections.
    """

    VERIFY_PATH = "/whoAmI/api/json"

    def __init__(
        self,
        config: IntegrationConfig,
        timeout: float = DEFAULT_TIMEOUT,
        verify_path: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize APIClient.

        Args:
            config: Complete instance configuration
            timeout: Transport timeout in seconds
            verify_path: Endpoint used to verify credentials (defaults to whoAmI)
            transport: Custom httpx transport (tests, proxies)
        """
        self.config = config
        self.base_url = normalize_base_url(config.hostname)
        self.verify_path = verify_path or self.VERIFY_PATH
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger().with_category(Category.EXTERNAL_API)

    @property
    def verify_endpoint(self) -> str:
        return f"{self.base_url}/{self.verify_path.lstrip('/')}"

    async def verify_authentication(self) -> None:
        """
        Verify that the provider accepts the configured credentials.

        Performs exactly one GET request.

        Raises:
            ProviderAuthenticationError: Provider responded with a non-2xx status
            ProviderTransportError: No response (DNS, connection, timeout, bad URL)
        """
        endpoint = self.verify_endpoint
        started = time.monotonic()

        try:
            url = httpx.URL(endpoint)
            async with httpx.AsyncClient(
                auth=httpx.BasicAuth(self.config.user_id, self.config.api_key),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.get(url)
        # ValueError: невалидный IDNA host (idna.core.InvalidCodepoint)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            reason = str(e) or type(e).__name__
            self.logger.error(
                "CloudBees endpoint unreachable",
                e,
                param("endpoint", endpoint),
                duration_ms(int((time.monotonic() - started) * 1000)),
            )
            raise ProviderTransportError(endpoint, reason) from e

        elapsed = duration_ms(int((time.monotonic() - started) * 1000))

        if not response.is_success:
            self.logger.warn(
                "CloudBees rejected credentials",
                param("endpoint", endpoint),
                param("status", response.status_code),
                param("user_id", self.config.user_id),
                elapsed,
            )
            raise ProviderAuthenticationError(
                endpoint,
                status=response.status_code,
                status_text=response.reason_phrase,
            )

        self.logger.debug(
            "CloudBees credentials verified",
            param("endpoint", endpoint),
            param("status", response.status_code),
            elapsed,
        )


def create_api_client(
    config: IntegrationConfig,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> APIClient:
    """Create an APIClient bound to ``config``."""
    return APIClient(config, timeout=timeout, transport=transport)
