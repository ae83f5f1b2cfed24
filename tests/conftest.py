import pytest
from fastapi.testclient import TestClient

from ddan_mock.main import create_app
from ddan_mock.registry import ScanRegistry


class ScriptedDraw:
    """Random source that returns queued values, then a 'still scanning' draw."""

    def __init__(self, *values: float):
        self.values = list(values)
        self.calls = 0

    def __call__(self) -> float:
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        return 0.99


@pytest.fixture
def registry():
    return ScanRegistry()


@pytest.fixture
def draw():
    return ScriptedDraw()


@pytest.fixture
def client(registry, draw):
    with TestClient(create_app(registry=registry, draw=draw)) as test_client:
        yield test_client
