"""Основной logger для структурированного логирования."""

import asyncio
import inspect
import os
import sys
import traceback
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from src.domain.config import MASK, secret_field_names
from src.logger.postgres_writer import PostgresWriter
from src.logger.types import Category, Field, Level, LogEntry


class Logger:
    """Logger для структурированного логирования с опциональной записью в PostgreSQL."""

    def __init__(
        self,
        service_name: str,
        environment: str,
        writer: PostgresWriter | None = None,
        level: Level | str = Level.INFO,
    ) -> None:
        """
        Initialize Logger.

        Args:
            service_name: Имя сервиса
            environment: Окружение (dev, stage, prod)
            writer: PostgresWriter для записи логов (None - вывод в stdout)
            level: Минимальный уровень, который попадает в лог
        """
        self.service_name = service_name
        self.environment = environment
        self.writer = writer
        self.level = Level.parse(level)
        self.instance_id = self._get_instance_id()

        # Контекстные поля
        self._fields: dict[str, Any] = {}
        self._category: Category | None = None
        self._trace_id: str | None = None
        self._request_id: str | None = None

        self._pending: set[asyncio.Task[None]] = set()

    def trace(self, msg: str, *fields: Field) -> None:
        """Log trace level message."""
        self._log(Level.TRACE, msg, None, *fields)

    def debug(self, msg: str, *fields: Field) -> None:
        """Log debug level message."""
        self._log(Level.DEBUG, msg, None, *fields)

    def info(self, msg: str, *fields: Field) -> None:
        """Log info level message."""
        self._log(Level.INFO, msg, None, *fields)

    def warn(self, msg: str, *fields: Field) -> None:
        """Log warn level message."""
        self._log(Level.WARN, msg, None, *fields)

    def error(self, msg: str, err: Exception | None = None, *fields: Field) -> None:
        """Log error level message."""
        self._log(Level.ERROR, msg, err, *fields)

    def fatal(self, msg: str, err: Exception | None = None, *fields: Field) -> None:
        """Log fatal level message and exit."""
        self._log(Level.FATAL, msg, err, *fields)
        raise SystemExit(1)

    def panic(self, msg: str, err: Exception | None = None, *fields: Field) -> None:
        """Log panic level message and raise."""
        self._log(Level.PANIC, msg, err, *fields)
        raise RuntimeError(msg)

    def is_enabled(self, level: Level) -> bool:
        """Check if messages of ``level`` pass the threshold."""
        return level.severity >= self.level.severity

    def _log(
        self,
        level: Level,
        msg: str,
        err: Exception | None,
        *fields: Field,
    ) -> None:
        """Основной метод логирования."""
        if not self.is_enabled(level):
            return

        # Получаем информацию о caller
        frame = inspect.currentframe()
        caller_frame = frame.f_back.f_back if frame and frame.f_back else None

        function_name = None
        file_path = None
        line_number = None

        if caller_frame:
            function_name = caller_frame.f_code.co_name
            file_path = self._clean_file_path(caller_frame.f_code.co_filename)
            line_number = caller_frame.f_lineno

        context: dict[str, Any] = dict(self._fields)
        category = self._category

        for field in fields:
            if field.key == "_category":
                if isinstance(field.value, Category):
                    category = field.value
                continue
            context[field.key] = self._render(field)

        duration_ms = context.pop("duration_ms", None)
        if duration_ms is not None:
            duration_ms = int(duration_ms)

        entry = LogEntry(
            timestamp=datetime.utcnow(),
            service_name=self.service_name,
            instance_id=self.instance_id,
            environment=self.environment,
            level=level,
            category=category,
            trace_id=self._trace_id,
            request_id=self._request_id,
            function_name=function_name,
            file_path=file_path,
            line_number=line_number,
            message=msg,
            context=context if context else None,
            duration_ms=duration_ms,
        )

        if err:
            entry.error_type = type(err).__name__
            entry.error_message = str(err)
            # Stack trace только для серьёзных ошибок
            if level in (Level.ERROR, Level.FATAL, Level.PANIC):
                entry.stack_trace = "".join(
                    traceback.format_exception(type(err), err, err.__traceback__)
                )

        if self.writer:
            self._write(entry)
        else:
            # Fallback: пишем в stdout если writer не инициализирован
            print(self._format(entry))

    def _write(self, entry: LogEntry) -> None:
        """Отправляет запись в writer, не ломая вызывающий код."""
        assert self.writer is not None
        try:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                # Нет running loop - синхронная запись в буфер
                asyncio.run(self.writer.write(entry))
                return

            task = loop.create_task(self.writer.write(entry))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        except Exception as write_err:
            print(f"[LOGGER ERROR] Failed to write log: {write_err}", file=sys.stderr)

    async def drain(self) -> None:
        """Дожидается, пока все записи будут переданы в writer."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @staticmethod
    def _render(field: Field) -> Any:  # noqa: ANN401
        """Маскирует значения секретных полей."""
        if field.secret or field.key in secret_field_names():
            return MASK if field.value else field.value
        return field.value

    @staticmethod
    def _format(entry: LogEntry) -> str:
        """Однострочное представление записи для stdout."""
        category = entry.category.value if entry.category else "-"
        line = f"[{entry.level.value}] {category}: {entry.message}"
        if entry.context:
            pairs = " ".join(f"{key}={value}" for key, value in entry.context.items())
            line = f"{line} {pairs}"
        if entry.duration_ms is not None:
            line = f"{line} duration_ms={entry.duration_ms}"
        if entry.error_message:
            line = f"{line} error={entry.error_type}: {entry.error_message}"
        return line

    def with_category(self, category: Category) -> "Logger":
        """Возвращает новый logger с указанной категорией."""
        new_logger = self._copy()
        new_logger._category = category
        return new_logger

    def with_trace_id(self, trace_id: str) -> "Logger":
        """Возвращает новый logger с trace ID."""
        new_logger = self._copy()
        new_logger._trace_id = trace_id
        return new_logger

    def with_request_id(self, request_id: str) -> "Logger":
        """Возвращает новый logger с request ID."""
        new_logger = self._copy()
        new_logger._request_id = request_id
        return new_logger

    def with_fields(self, *fields: Field) -> "Logger":
        """Возвращает новый logger с дополнительными полями."""
        new_logger = self._copy()
        for field in fields:
            new_logger._fields[field.key] = self._render(field)
        return new_logger

    def _copy(self) -> "Logger":
        """Создаёт копию logger."""
        new_logger = Logger(self.service_name, self.environment, self.writer, self.level)
        new_logger.instance_id = self.instance_id
        new_logger._fields = dict(self._fields)
        new_logger._category = self._category
        new_logger._trace_id = self._trace_id
        new_logger._request_id = self._request_id
        new_logger._pending = self._pending
        return new_logger

    @staticmethod
    def _get_instance_id() -> str:
        """Получает уникальный ID инстанса из env или генерирует."""
        # Kubernetes pod name
        if hostname := os.getenv("HOSTNAME"):
            return hostname
        # Docker container ID
        if container_id := os.getenv("CONTAINER_ID"):
            return container_id
        return str(uuid.uuid4())

    @staticmethod
    def _clean_file_path(file_path: str) -> str:
        """Очищает путь к файлу от абсолютного пути."""
        path = Path(file_path)

        parts = path.parts
        if "src" in parts:
            idx = parts.index("src")
            return str(Path(*parts[idx:]))

        return path.name


# Глобальный logger instance
_global_logger: Logger | None = None


def get_logger() -> Logger:
    """
    Возвращает глобальный logger instance.

    Если init_logger() ещё не вызывался (использование как библиотеки),
    создаётся logger с выводом в stdout.
    """
    global _global_logger
    if _global_logger is None:
        _global_logger = Logger(
            service_name=os.getenv("SERVICE_NAME", "cloudbees-integration"),
            environment=os.getenv("ENVIRONMENT", "dev"),
            level=os.getenv("LOG_LEVEL", "info"),
        )
    return _global_logger


def init_logger(
    service_name: str,
    environment: str,
    writer: PostgresWriter | None = None,
    level: Level | str = Level.INFO,
) -> Logger:
    """
    Инициализирует глобальный logger.

    Args:
        service_name: Имя сервиса
        environment: Окружение (dev, stage, prod)
        writer: PostgresWriter для записи логов
        level: Минимальный уровень логирования

    Returns:
        Logger instance
    """
    global _global_logger
    _global_logger = Logger(service_name, environment, writer, level)
    return _global_logger


def reset_logger() -> None:
    """Сбрасывает глобальный logger (используется в тестах)."""
    global _global_logger
    _global_logger = None
