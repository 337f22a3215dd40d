"""Pytest configuration and fixtures."""

import pytest

from valuestream import notifier


@pytest.fixture(autouse=True)
def reset_scheduler():
    """Keep a scheduler installed by one test from leaking into the next."""
    yield
    notifier.set_scheduler(None)
