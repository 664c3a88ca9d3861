"""Pytest configuration and fixtures for cascadelab tests."""

import logging
import tempfile

from datetime import datetime
from pathlib import Path

import pytest


def pytest_configure(config):
    """Register custom test markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that do not require a database file"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests against a SQLite database"
    )
    config.addinivalue_line(
        "markers", "cascade: Tests of the Origin/Content cascade-delete contract"
    )


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config at a temp file and keep logging setup out of the home dir."""
    import cascadelab.cli
    import cascadelab.config
    import cascadelab.logging_config

    config_path = tmp_path / "config" / "config.toml"
    monkeypatch.setattr(cascadelab.config, "get_config_path", lambda: config_path)
    monkeypatch.setattr(cascadelab.cli, "get_config_path", lambda: config_path)
    monkeypatch.setattr(cascadelab.logging_config, "_logging_configured", True)

    # Without any handler, warnings would fall through to stderr and mix into CLI output
    null_handler = logging.NullHandler()
    logging.getLogger("cascadelab").addHandler(null_handler)
    yield config_path
    logging.getLogger("cascadelab").removeHandler(null_handler)


# =============================================================================
# Database Test Fixtures
# =============================================================================


@pytest.fixture
def temp_db():
    """Create a temporary database path for testing."""
    temp_dir = Path(tempfile.gettempdir())
    db_path = temp_dir / f"test_cascadelab_{datetime.now().timestamp()}.db"

    yield db_path

    # Cleanup
    if db_path.exists():
        db_path.unlink()
    for ext in ["-wal", "-shm", "-journal"]:
        extra = Path(str(db_path) + ext)
        if extra.exists():
            extra.unlink()


@pytest.fixture
def db_session(temp_db):
    """Create a fresh session on its own engine with foreign keys enforced."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker

    from cascadelab.database.models import Base
    from cascadelab.database.session import enable_foreign_keys

    engine = create_engine(f"sqlite:///{temp_db}")
    enable_foreign_keys(engine)
    Base.metadata.create_all(engine)

    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.rollback()
    session.close()
    engine.dispose()


@pytest.fixture
def initialized_db(temp_db):
    """Initialize the global session factory on a temp database."""
    from cascadelab.database.session import cleanup_database, init_database

    cleanup_database()
    init_database(str(temp_db))

    yield temp_db

    cleanup_database()


@pytest.fixture
def scenario_session(initialized_db):
    """Session whose transaction is rolled back when the test ends."""
    from cascadelab.database.session import scenario_scope

    with scenario_scope() as session:
        yield session


@pytest.fixture
def repository(scenario_session):
    """Repository that leaves bulk-deleted objects in the session."""
    from cascadelab.database.repository import OriginRepository

    return OriginRepository(scenario_session, invalidate_on_bulk=False)


@pytest.fixture
def seeded(repository):
    """Persist "Origin 1" owning "Content 1"; return (origin, content)."""
    from cascadelab.scenarios import seed

    origin, content = seed(repository)

    assert repository.find_origin(origin.id) is not None
    assert repository.find_content(content.id) is not None

    return origin, content
