"""Test fixtures and configuration."""

import logging
import os
import sys
from uuid import uuid4

# Settings are read at import time; point them at SQLite before importing the app.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["FEED_SECRET_ID"] = ""
os.environ["FEED_SECRET_KEY"] = ""
os.environ["OPENROUTER_API_KEY"] = ""

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
import structlog  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ledger_sync.services.cache import TTLCache, default_cache  # noqa: E402


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Configure structlog for proper capsys capture in tests."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(),
        foreign_pre_chain=processors[:-1],
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    yield

    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def cleanup_default_cache():
    """Clear the shared TTL cache before and after each test."""
    default_cache.clear()
    yield
    default_cache.clear()


@pytest_asyncio.fixture
async def db_engine():
    """Fresh in-memory SQLite database per test.

    StaticPool keeps a single connection so the schema and data survive
    across sessions opened by fixtures and by API handlers.
    """
    from ledger_sync.database import Base
    from ledger_sync.models import (  # noqa: F401
        Account,
        CandidateEntry,
        Category,
        LedgerEntry,
        RecurringExpense,
        RecurringExpenseCheck,
    )

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    """Session maker bound to the test engine, also used by API handlers."""
    from ledger_sync import database

    maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    previous = database.set_test_session_maker(maker)
    yield maker
    database.set_test_session_maker(previous)


@pytest_asyncio.fixture
async def db(session_maker):
    """Database session for arranging and asserting test data."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def ttl_cache():
    return TTLCache(default_ttl_seconds=60, max_size=10)


@pytest_asyncio.fixture
async def client(session_maker, user_id):
    """Async HTTP client bound to the app, authenticated as ``user_id``."""
    from ledger_sync.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-Id": str(user_id)},
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
