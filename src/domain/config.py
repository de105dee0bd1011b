"""Integration instance configuration models."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

MASK = "***"


@dataclass(frozen=True)
class ConfigField:
    """
    Declaration of a single instance configuration field.

    Sensitivity is explicit: every display or log path must check ``secret``
    before rendering the value.
    """

    name: str  # Ключ во внешнем mapping (camelCase)
    attribute: str  # Атрибут IntegrationConfig
    type: str = "string"
    secret: bool = False


# Поля, которые хост (UI, .env, файл) заполняет для каждого запуска интеграции
INSTANCE_CONFIG_FIELDS: dict[str, ConfigField] = {
    "userId": ConfigField(name="userId", attribute="user_id"),
    "hostname": ConfigField(name="hostname", attribute="hostname"),
    "apiKey": ConfigField(name="apiKey", attribute="api_key", secret=True),
}


def secret_field_names() -> set[str]:
    """Return both external names and attribute names of secret fields."""
    names: set[str] = set()
    for config_field in INSTANCE_CONFIG_FIELDS.values():
        if config_field.secret:
            names.add(config_field.name)
            names.add(config_field.attribute)
    return names


@dataclass(frozen=True)
class IntegrationConfig:
    """
    Credentials and endpoint of one CloudBees account.

    Built once per integration run and never mutated afterwards.
    """

    user_id: str = ""
    api_key: str = field(default="", repr=False)
    hostname: str = ""

    @property
    def is_complete(self) -> bool:
        """Check that every required field is present and non-empty."""
        return bool(self.user_id and self.api_key and self.hostname)

    def to_dict(self) -> dict[str, str]:
        """Raw camelCase mapping (contains the secret, never log it)."""
        return {
            name: getattr(self, config_field.attribute)
            for name, config_field in INSTANCE_CONFIG_FIELDS.items()
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "IntegrationConfig":
        """
        Create IntegrationConfig from a host-supplied mapping.

        Args:
            data: Mapping with ``userId``, ``apiKey`` and ``hostname`` keys.
                Missing keys and falsy values become empty strings.

        Returns:
            IntegrationConfig instance (possibly incomplete)
        """
        data = data or {}
        values = {
            config_field.attribute: cls._as_str(data.get(name))
            for name, config_field in INSTANCE_CONFIG_FIELDS.items()
        }
        return cls(**values)

    @staticmethod
    def _as_str(value: Any) -> str:  # noqa: ANN401
        if not value:
            return ""
        return str(value)


def masked_config(config: IntegrationConfig | Mapping[str, Any] | None) -> dict[str, Any]:
    """Render a configuration for logs/UI with secret values replaced by ``***``."""
    if config is None:
        return {}

    result: dict[str, Any] = {}
    for name, config_field in INSTANCE_CONFIG_FIELDS.items():
        if isinstance(config, IntegrationConfig):
            value = getattr(config, config_field.attribute)
        else:
            value = config.get(name)

        if config_field.secret and value:
            value = MASK
        result[name] = value
    return result
