"""
Pytest Configuration for Tankwatch Analytics Tests

Settings objects read TANKWATCH_* overrides when constructed, so the
variables are cleared for every test to keep the documented defaults.
"""

import os

import pytest

# Import all fixtures
from tests.fixtures.reading_fixtures import *  # noqa


@pytest.fixture(autouse=True)
def clean_tankwatch_env(monkeypatch):
    """Remove TANKWATCH_* overrides for the duration of a test."""
    for key in list(os.environ):
        if key.startswith("TANKWATCH_"):
            monkeypatch.delenv(key, raising=False)
    yield
