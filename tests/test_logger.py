"""Tests for the structured logger."""
import asyncio
from datetime import datetime

import pytest

from src.logger import postgres_writer
from src.logger.logger import Logger, get_logger, init_logger, reset_logger
from src.logger.types import Category, Level, LogEntry, category, duration_ms, param, secret


class RecordingWriter:
    """In-memory stand-in for PostgresWriter."""

    def __init__(self):
        self.entries: list[LogEntry] = []

    async def write(self, entry: LogEntry) -> None:
        self.entries.append(entry)


def test_stdout_fallback_format(capsys):
    logger = Logger("svc", "test")

    logger.info("Hello", category(Category.CONFIG), param("user_id", "u"), duration_ms(12))

    assert capsys.readouterr().out.strip() == "[info] config: Hello user_id=u duration_ms=12"


def test_secret_field_is_masked(capsys):
    logger = Logger("svc", "test")

    logger.info("creds", secret("token", "abc123"), param("apiKey", "xyz789"))

    out = capsys.readouterr().out
    assert "abc123" not in out
    assert "xyz789" not in out
    assert "token=***" in out
    assert "apiKey=***" in out


def test_with_fields_masks_secret(capsys):
    logger = Logger("svc", "test").with_fields(param("api_key", "xyz789"))

    logger.info("creds")

    assert "xyz789" not in capsys.readouterr().out


def test_level_threshold(capsys):
    logger = Logger("svc", "test", level="warning")

    logger.info("hidden")
    logger.debug("hidden")
    logger.warn("shown")

    out = capsys.readouterr().out
    assert "hidden" not in out
    assert "[warn]" in out


def test_with_category_keeps_context(capsys):
    base = Logger("svc", "test").with_request_id("req-1")
    logger = base.with_category(Category.VALIDATION)

    logger.info("msg")

    assert logger._request_id == "req-1"
    assert "[info] validation: msg" in capsys.readouterr().out


def test_error_includes_type(capsys):
    logger = Logger("svc", "test")

    logger.error("failed", ValueError("boom"))

    assert "error=ValueError: boom" in capsys.readouterr().out


def test_panic_raises():
    with pytest.raises(RuntimeError, match="broken"):
        Logger("svc", "test").panic("broken")


@pytest.mark.parametrize(
    "value,expected",
    [("DEBUG", Level.DEBUG), ("warning", Level.WARN), ("nope", Level.INFO), (None, Level.INFO)],
)
def test_level_parse(value, expected):
    assert Level.parse(value) == expected


def test_get_logger_initialises_lazily():
    reset_logger()

    logger = get_logger()

    assert logger is get_logger()
    assert isinstance(logger, Logger)


def test_init_logger_replaces_global():
    logger = init_logger("svc", "prod")

    assert get_logger() is logger
    assert logger.environment == "prod"


@pytest.mark.asyncio
async def test_writer_receives_entries():
    writer = RecordingWriter()
    logger = Logger("svc", "test", writer=writer)  # type: ignore[arg-type]

    logger.with_category(Category.EXTERNAL_API).warn("rejected", param("status", 401))
    await logger.drain()
    await asyncio.sleep(0)

    assert len(writer.entries) == 1
    entry = writer.entries[0]
    assert entry.level == Level.WARN
    assert entry.category == Category.EXTERNAL_API
    assert entry.context == {"status": 401}
    assert entry.function_name == "test_writer_receives_entries"


class FakeCursor:

    def __init__(self, rows):
        self.rows = rows

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeConnection:

    def __init__(self):
        self.rows = []
        self.commits = 0
        self.closed = False

    def set_session(self, autocommit):
        pass

    def cursor(self):
        return FakeCursor(self.rows)

    def commit(self):
        self.commits += 1

    def rollback(self):
        pass

    def close(self):
        self.closed = True


def make_entry(message="hello"):
    return LogEntry(
        timestamp=datetime(2026, 1, 1),
        service_name="svc",
        instance_id="i-1",
        environment="test",
        level=Level.INFO,
        message=message,
        category=Category.VALIDATION,
        context={"status": 401},
    )


@pytest.mark.asyncio
async def test_postgres_writer_flushes_batch(monkeypatch):
    conn = FakeConnection()
    monkeypatch.setattr(postgres_writer.psycopg2, "connect", lambda dsn: conn)

    def fake_execute_values(cursor, query, values, page_size):
        cursor.rows.extend(values)

    monkeypatch.setattr(postgres_writer.psycopg2.extras, "execute_values", fake_execute_values)

    async with postgres_writer.create_postgres_writer("dbname=logs", batch_size=2) as writer:
        await writer.write(make_entry("one"))
        assert conn.rows == []
        await writer.write(make_entry("two"))

    assert [row[11] for row in conn.rows] == ["one", "two"]
    assert conn.rows[0][5] == "validation"
    assert conn.rows[0][15] == '{"status": 401}'
    assert conn.commits == 1
    assert conn.closed


@pytest.mark.asyncio
async def test_postgres_writer_without_connection_falls_back_to_stderr(capsys):
    writer = postgres_writer.PostgresWriter("dbname=logs")

    await writer.write(make_entry("lost"))
    await writer.flush()

    assert '"message": "lost"' in capsys.readouterr().err
    assert writer.buffer == []
