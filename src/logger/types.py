"""Types and constants for structured logging."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Level(str, Enum):
    """Log level определяет уровень важности лога."""

    TRACE = "trace"  # Детальная трассировка выполнения
    DEBUG = "debug"  # Отладочная информация
    INFO = "info"  # Информационные сообщения
    WARN = "warn"  # Предупреждения
    ERROR = "error"  # Ошибки (recoverable)
    FATAL = "fatal"  # Критические ошибки
    PANIC = "panic"  # Паника (программа падает)

    @property
    def severity(self) -> int:
        """Numeric rank used for threshold comparison."""
        return list(Level).index(self)

    @classmethod
    def parse(cls, value: "str | Level | None", default: "Level | None" = None) -> "Level":
        """Parse level name (case-insensitive), ``warning`` is accepted as ``warn``."""
        if isinstance(value, Level):
            return value
        if not value:
            return default or cls.INFO
        name = value.strip().lower()
        if name == "warning":
            name = "warn"
        try:
            return cls(name)
        except ValueError:
            return default or cls.INFO


class Category(str, Enum):
    """Category определяет категорию события для группировки логов."""

    VALIDATION = "validation"  # Проверка конфигурации инстанса
    EXTERNAL_API = "external_api"  # Запросы к CloudBees
    CONFIG = "config"  # Загрузка настроек
    DATABASE = "database"  # Запись логов в PostgreSQL
    SECURITY = "security"  # События безопасности


@dataclass
class LogEntry:
    """LogEntry представляет одну запись лога для вставки в PostgreSQL."""

    timestamp: datetime
    service_name: str
    instance_id: str
    environment: str
    level: Level
    message: str
    ingestion_time: datetime = field(default_factory=datetime.utcnow)
    category: Category | None = None
    trace_id: str | None = None
    request_id: str | None = None
    function_name: str | None = None
    file_path: str | None = None
    line_number: int | None = None
    error_type: str | None = None
    error_message: str | None = None
    stack_trace: str | None = None
    context: dict[str, Any] | None = None
    duration_ms: int | None = None


@dataclass
class Field:
    """Field для структурированных данных в логах."""

    key: str
    value: Any
    secret: bool = False


# Helper функции для создания полей


def category(cat: Category) -> Field:
    """Создаёт поле для категории лога."""
    return Field(key="_category", value=cat)


def param(key: str, value: Any) -> Field:
    """Универсальная функция для добавления параметра."""
    return Field(key=key, value=value)


def string(key: str, value: str) -> Field:
    """Создаёт строковое поле."""
    return Field(key=key, value=value)


def integer(key: str, value: int) -> Field:
    """Создаёт целочисленное поле."""
    return Field(key=key, value=value)


def secret(key: str, value: Any) -> Field:
    """Создаёт поле, значение которого никогда не попадает в лог."""
    return Field(key=key, value=value, secret=True)


def duration_ms(value: int) -> Field:
    """Создаёт поле для duration в миллисекундах."""
    return Field(key="duration_ms", value=value)


def error(err: Exception) -> Field:
    """Создаёт поле для ошибки."""
    return Field(key="error", value=str(err))
