"""Shared pytest fixtures for csvintake tests."""

import logging
import tempfile
import os
import pytest

from csvintake import logging_setup
from csvintake.database.factories import create_sqlite_database
from csvintake.domain.account import AccountService
from csvintake.domain.csv_import import CSVImportService


@pytest.fixture(autouse=True)
def reset_logging():
    """Restore the package logger after each test.

    CLI invocations configure logging once per process, which would leak
    handlers and levels into later tests.
    """
    logger = logging.getLogger("csvintake")
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    saved_propagate = logger.propagate
    saved_configured = logging_setup._CONFIGURED

    yield

    logger.handlers = saved_handlers
    logger.setLevel(saved_level)
    logger.propagate = saved_propagate
    logging_setup._CONFIGURED = saved_configured


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def import_service(temp_db):
    """Create a CSVImportService with a temporary database."""
    return CSVImportService(temp_db)


@pytest.fixture
def sample_account(account_service):
    """Create a sample account for testing."""
    account_id = account_service.create_account(name="Test Account")
    return account_service.get_account(account_id)


@pytest.fixture
def write_csv(tmp_path):
    """Return a helper that writes CSV text to a file and returns its path."""

    def _write(text: str, name: str = "statement.csv", encoding: str = "utf-8") -> str:
        path = tmp_path / name
        path.write_bytes(text.encode(encoding))
        return str(path)

    return _write


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
