from __future__ import annotations

import pytest

from tests.sampling.sampling_fixtures import FakeSamplingStore, FakeSession


@pytest.fixture
def store(monkeypatch) -> FakeSamplingStore:
    return FakeSamplingStore().install(monkeypatch)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()
