"""
pytest configuration: point the service at a throwaway SQLite database
before anything imports the settings, then build tables once per run.
"""
import os
import tempfile

_TEST_DB_DIR = tempfile.mkdtemp(prefix="assessment-tests-")
os.environ.setdefault("ASSESSMENT_DATABASE_URL", f"sqlite:///{_TEST_DB_DIR}/assessment-test.db")
os.environ.setdefault("ASSESSMENT_LOG_FORMAT", "text")
os.environ.setdefault("ASSESSMENT_ENVIRONMENT", "development")

import pytest

from assessment_service.database import Base, engine
from assessment_service import models  # noqa: F401 registers ORM mappings with Base.metadata
from assessment_service.main import app  # noqa: F401 creates tables and seeds the catalog
from assessment_service.rate_limit import limiter


@pytest.fixture(autouse=True, scope="session")
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def fresh_rate_limits():
    """Every test starts with empty rate-limit counters."""
    limiter.reset()
    yield
    limiter.reset()
