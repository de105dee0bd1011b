"""
CloudBees integration - invocation validation entry point.

Загружает конфигурацию инстанса из окружения (.env в dev), проверяет, что
учётные данные принимаются CloudBees, и завершается с кодом:
    0 - учётные данные валидны
    1 - конфигурация неполная или учётные данные отклонены / сервер недоступен
    2 - непредвиденная ошибка
  130 - проверка прервана сигналом
"""

import asyncio
import signal
import sys
from functools import partial

import psycopg2
from dotenv import load_dotenv

from src.config.settings import Settings
from src.domain.config import masked_config
from src.domain.errors import IntegrationError
from src.handlers.invocation import validate_invocation
from src.logger.logger import init_logger
from src.logger.postgres_writer import PostgresWriter
from src.logger.types import Category, category, param

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_UNEXPECTED = 2
EXIT_CANCELLED = 130


async def run(settings: Settings) -> int:
    """Validate the configured invocation and return the process exit code."""
    log_writer: PostgresWriter | None = None
    if settings.log_dsn:
        log_writer = PostgresWriter(dsn=settings.log_dsn, batch_size=100, flush_interval=5.0)
        try:
            await log_writer.connect()
        except psycopg2.Error:
            # Ошибка уже в stderr, логируем в stdout и продолжаем проверку
            log_writer = None

    logger = init_logger(
        service_name=settings.service_name,
        environment=settings.environment,
        writer=log_writer,
        level=settings.log_level,
    )

    logger.info(
        "Starting invocation validation",
        category(Category.CONFIG),
        param("environment", settings.environment),
        param("version", settings.service_version),
        param("config", masked_config(settings.integration)),
    )

    task = asyncio.create_task(
        validate_invocation(settings.integration, timeout=settings.request_timeout)
    )

    # Сигнал отменяет запрос к CloudBees, состояния для очистки нет
    loop = asyncio.get_running_loop()

    def signal_handler(sig: int) -> None:
        logger.info("Received signal", param("signal", sig))
        task.cancel()

    signals = (signal.SIGTERM, signal.SIGINT)
    for sig in signals:
        loop.add_signal_handler(sig, partial(signal_handler, sig))

    try:
        await task
    except asyncio.CancelledError:
        logger.warn("Invocation validation cancelled")
        return EXIT_CANCELLED
    except IntegrationError as e:
        logger.error(
            "Invocation validation failed",
            e,
            param("error_type", type(e).__name__),
            param("status", getattr(e, "status", None)),
        )
        return EXIT_INVALID
    except Exception as e:
        logger.error("Unexpected error during invocation validation", e)
        return EXIT_UNEXPECTED
    else:
        logger.info("CloudBees credentials are valid")
        return EXIT_OK
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)
        if log_writer:
            await logger.drain()
            await log_writer.close()


def cli() -> None:
    """Console script entry point."""
    load_dotenv(override=False)
    sys.exit(asyncio.run(run(Settings())))


if __name__ == "__main__":
    cli()
