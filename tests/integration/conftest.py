"""Shared fixtures for API integration tests

These tests drive the real FastAPI app in-process through TestClient, with
in-memory repositories instead of the bundled YAML files. No server or
network access is needed:

    pytest tests/integration/
"""

import pytest
from fastapi.testclient import TestClient

from kbsearch.api import create_app


@pytest.fixture
def client(kb_service):
    """TestClient over the shared in-memory service"""
    with TestClient(create_app(kb_service), raise_server_exceptions=False) as test_client:
        yield test_client
