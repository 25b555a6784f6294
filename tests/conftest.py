from __future__ import annotations

import pytest

from tests.helpers.fakes import FakeClock, Harness


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def harness(tmp_path, clock):
    """
    Wired SessionClient with an in-memory store, scripted transport and a
    headless navigator sitting on the home route.
    """
    return Harness.make(tmp_path, clock=clock)
