"""Logger module for the CloudBees integration."""

from src.logger.logger import Logger, get_logger, init_logger
from src.logger.postgres_writer import PostgresWriter, create_postgres_writer
from src.logger.types import Category, Field, Level, LogEntry

__all__ = [
    "Logger",
    "get_logger",
    "init_logger",
    "PostgresWriter",
    "create_postgres_writer",
    "Category",
    "Level",
    "LogEntry",
    "Field",
]
