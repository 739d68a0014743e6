"""Shared test fixtures."""

from __future__ import annotations

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration done by CLI invocations."""
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()
