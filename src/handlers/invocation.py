"""Invocation validation: the gate that decides whether an integration run may start."""

from collections.abc import Callable, Mapping
from typing import Any

from src.domain.config import IntegrationConfig, masked_config
from src.domain.errors import IntegrationValidationError
from src.logger.logger import get_logger
from src.logger.types import Category, param
from src.services.cloudbees import DEFAULT_TIMEOUT, APIClient, create_api_client

REQUIRED_FIELDS_MESSAGE = "Config requires all of {userId, apiKey, hostname}"

ClientFactory = Callable[[IntegrationConfig], APIClient]


def check_config_complete(
    config: IntegrationConfig | Mapping[str, Any] | None,
) -> IntegrationConfig:
    """
    Local completeness check. No I/O.

    Args:
        config: IntegrationConfig or a host mapping with camelCase keys

    Returns:
        The config as IntegrationConfig

    Raises:
        IntegrationValidationError: If any required field is missing or empty
    """
    if not isinstance(config, IntegrationConfig):
        config = IntegrationConfig.from_mapping(config)

    if not config.is_complete:
        raise IntegrationValidationError(REQUIRED_FIELDS_MESSAGE)

    return config


async def validate_invocation(
    config: IntegrationConfig | Mapping[str, Any] | None,
    timeout: float = DEFAULT_TIMEOUT,
    client_factory: ClientFactory | None = None,
) -> None:
    """
    Validate an integration invocation.

    1. Check that userId, apiKey and hostname are all set.
    2. Build a fresh APIClient and verify the credentials with one request.

    Nothing is cached or retried: every call makes its own request.

    Args:
        config: Instance configuration
        timeout: Transport timeout for the verification request
        client_factory: Builds the client from the config (defaults to
            create_api_client)

    Raises:
        IntegrationValidationError: Incomplete configuration (no request made)
        ProviderAuthenticationError: Credentials rejected by CloudBees
        ProviderTransportError: CloudBees unreachable
    """
    logger = get_logger().with_category(Category.VALIDATION)

    try:
        integration_config = check_config_complete(config)
    except IntegrationValidationError:
        logger.warn(
            "Instance config is incomplete",
            param("config", masked_config(config)),
        )
        raise

    logger.info(
        "Verifying CloudBees credentials",
        param("user_id", integration_config.user_id),
        param("hostname", integration_config.hostname),
    )

    if client_factory is None:
        client = create_api_client(integration_config, timeout=timeout)
    else:
        client = client_factory(integration_config)

    await client.verify_authentication()

    logger.info(
        "Invocation validated",
        param("user_id", integration_config.user_id),
        param("hostname", integration_config.hostname),
    )
