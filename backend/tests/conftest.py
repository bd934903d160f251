"""
Shared fixtures for the quiz engine tests
"""
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from persona_engine.core import create_session, load_graph, load_graph_file
from persona_engine.main import create_app

from .factories import scenario_source

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@pytest.fixture
def scenario_graph():
    return load_graph(scenario_source())


@pytest.fixture
def scenario_session(scenario_graph):
    return create_session(scenario_graph)


@pytest.fixture(scope="session")
def sample_graph_path():
    return DATA_DIR / "personality_graph.json"


@pytest.fixture(scope="session")
def sample_graph(sample_graph_path):
    return load_graph_file(str(sample_graph_path))


@pytest.fixture
def client(sample_graph):
    """TestClient running the full app on the shipped graph"""
    with TestClient(create_app(sample_graph)) as test_client:
        yield test_client
