"""PostgreSQL writer для логов с батчингом."""

import asyncio
import contextlib
import json
import sys
from collections.abc import Sequence
from contextlib import asynccontextmanager
from typing import Any

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as Connection

from src.logger.types import LogEntry

INSERT_QUERY = """
    INSERT INTO logs (
        timestamp, service_name, instance_id, environment,
        level, category, trace_id, request_id,
        function_name, file_path, line_number,
        message, error_type, error_message, stack_trace, context,
        duration_ms, ingestion_time
    ) VALUES %s
"""


class PostgresWriter:
    """PostgresWriter записывает логи в PostgreSQL с батчингом."""

    def __init__(
        self,
        dsn: str,
        batch_size: int = 100,
        flush_interval: float = 5.0,
    ) -> None:
        """
        Initialize PostgresWriter.

        Args:
            dsn: PostgreSQL connection string
            batch_size: Размер батча для flush
            flush_interval: Интервал автоматического flush в секундах
        """
        self.dsn = dsn
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.buffer: list[LogEntry] = []
        self._lock = asyncio.Lock()
        self._conn: Connection | None = None
        self._flush_task: asyncio.Task[None] | None = None
        self._closed = False

    async def connect(self) -> None:
        """Подключается к PostgreSQL и запускает фоновый flush."""
        try:
            self._conn = psycopg2.connect(self.dsn)
            self._conn.set_session(autocommit=False)
        except psycopg2.Error as e:
            print(
                f"[LOGGER ERROR] Failed to connect to PostgreSQL: {e}",
                file=sys.stderr,
            )
            raise

        self._flush_task = asyncio.create_task(self._background_flush())

    async def write(self, entry: LogEntry) -> None:
        """Добавляет запись в буфер."""
        await self.write_batch([entry])

    async def write_batch(self, entries: Sequence[LogEntry]) -> None:
        """Добавляет несколько записей в буфер."""
        if self._closed:
            return

        async with self._lock:
            self.buffer.extend(entries)

            if len(self.buffer) >= self.batch_size:
                await self._flush_locked()

    async def flush(self) -> None:
        """Принудительно записывает буфер в БД."""
        async with self._lock:
            await self._flush_locked()

    async def _flush_locked(self) -> None:
        """Записывает буфер в БД (должен вызываться с захваченным lock)."""
        if not self.buffer:
            return
        if not self._conn:
            self._fallback_to_stderr()
            self.buffer.clear()
            return

        try:
            with self._conn.cursor() as cursor:
                psycopg2.extras.execute_values(
                    cursor,
                    INSERT_QUERY,
                    [self._to_row(entry) for entry in self.buffer],
                    page_size=self.batch_size,
                )
            self._conn.commit()
        except psycopg2.Error as e:
            print(
                f"[LOGGER ERROR] Failed to insert logs into PostgreSQL: {e}",
                file=sys.stderr,
            )
            self._conn.rollback()
            self._fallback_to_stderr()

        self.buffer.clear()

    @staticmethod
    def _to_row(entry: LogEntry) -> tuple[Any, ...]:
        return (
            entry.timestamp,
            entry.service_name,
            entry.instance_id,
            entry.environment,
            entry.level.value,
            entry.category.value if entry.category else None,
            entry.trace_id,
            entry.request_id,
            entry.function_name,
            entry.file_path,
            entry.line_number,
            entry.message,
            entry.error_type,
            entry.error_message,
            entry.stack_trace,
            json.dumps(entry.context, default=str) if entry.context is not None else None,
            entry.duration_ms,
            entry.ingestion_time,
        )

    def _fallback_to_stderr(self) -> None:
        """Записывает логи в stderr если PostgreSQL недоступен."""
        for entry in self.buffer:
            data: dict[str, Any] = {
                "timestamp": entry.timestamp.isoformat(),
                "level": entry.level.value,
                "category": entry.category.value if entry.category else None,
                "message": entry.message,
                "service_name": entry.service_name,
                "environment": entry.environment,
            }
            if entry.error_message:
                data["error"] = entry.error_message
            if entry.context:
                data["context"] = entry.context

            print(json.dumps(data, default=str), file=sys.stderr)

    async def _background_flush(self) -> None:
        """Периодически сбрасывает буфер."""
        while not self._closed:
            try:
                await asyncio.sleep(self.flush_interval)
                await self.flush()
            except asyncio.CancelledError:
                break

    async def close(self) -> None:
        """Закрывает writer и сбрасывает оставшиеся логи."""
        self._closed = True

        if self._flush_task:
            self._flush_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._flush_task
            self._flush_task = None

        await self.flush()

        if self._conn:
            self._conn.close()
            self._conn = None


@asynccontextmanager
async def create_postgres_writer(
    dsn: str,
    batch_size: int = 100,
    flush_interval: float = 5.0,
) -> Any:
    """
    Context manager для создания PostgresWriter.

    Yields:
        PostgresWriter instance
    """
    writer = PostgresWriter(dsn, batch_size, flush_interval)
    await writer.connect()
    try:
        yield writer
    finally:
        await writer.close()
