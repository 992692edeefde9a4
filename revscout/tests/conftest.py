"""Shared fixtures for revscout tests."""

import pytest

from revscout.tests.fakes import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
