"""
Test configuration: repo root on sys.path and an in-memory SQLite engine.
"""

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

REPO_ROOT = Path(__file__).parent.parent
TESTS_DIR = Path(__file__).parent
for path in (REPO_ROOT, TESTS_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

# db.session builds its engine at import time; never point it at a real database
os.environ["DATABASE_URL"] = "sqlite://"

import models.dealership  # noqa: E402,F401  register tables
import models.setting  # noqa: E402,F401
import models.shift  # noqa: E402,F401


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session
