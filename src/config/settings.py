"""Settings module for the CloudBees integration."""

import os
from collections.abc import Mapping

from src.domain.config import INSTANCE_CONFIG_FIELDS, IntegrationConfig

# Внешние имена переменных окружения -> поле IntegrationConfig.
# Первая непустая переменная из списка выигрывает.
# HOSTNAME не используется: его выставляет Docker/K8s (имя контейнера).
ENV_FIELD_MAP: dict[str, tuple[str, ...]] = {
    "userId": ("USER_ID", "CLIENT_ID"),
    "apiKey": ("API_KEY", "CLIENT_SECRET"),
    "hostname": ("HOSTNAME_URL", "CLOUDBEES_HOSTNAME"),
}

# Docker secrets для секретных полей
SECRET_FILES: dict[str, str] = {
    "apiKey": "/run/secrets/api_key",
}


def _read_secret_file(path: str) -> str | None:
    """Read a Docker secret, None if the file is absent."""
    try:
        with open(path) as f:
            return f.read().strip()
    except FileNotFoundError:
        return None


def load_instance_config(
    environ: Mapping[str, str] | None = None,
    secret_files: Mapping[str, str] | None = None,
) -> IntegrationConfig:
    """
    Build IntegrationConfig from environment variables.

    Used in local/development mode; managed hosts pass a mapping to
    IntegrationConfig.from_mapping() directly.

    Args:
        environ: Environment mapping (defaults to os.environ)
        secret_files: Field name -> secret file path (defaults to SECRET_FILES)

    Returns:
        IntegrationConfig, possibly incomplete
    """
    environ = os.environ if environ is None else environ
    secret_files = SECRET_FILES if secret_files is None else secret_files

    values: dict[str, str] = {}
    for name in INSTANCE_CONFIG_FIELDS:
        value = None
        if name in secret_files:
            value = _read_secret_file(secret_files[name])
        if not value:
            value = next(
                (environ[var] for var in ENV_FIELD_MAP[name] if environ.get(var)),
                None,
            )
        if value:
            values[name] = value

    return IntegrationConfig.from_mapping(values)


class Settings:
    """Application settings."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        env = os.environ if environ is None else environ

        # Service info
        self.environment = env.get("ENVIRONMENT", "dev")
        self.service_name = env.get("SERVICE_NAME", "cloudbees-integration")
        self.service_version = env.get("SERVICE_VERSION", "0.1.0")
        self.log_level = env.get("LOG_LEVEL", "info")

        # PostgreSQL для логов (опционально)
        self.log_dsn = env.get("LOG_DSN") or None

        # Таймаут запроса к CloudBees, секунды
        self.request_timeout = float(env.get("REQUEST_TIMEOUT", "30.0"))

        # Конфигурация инстанса интеграции
        self.integration = load_instance_config(env)
