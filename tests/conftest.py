"""
Pytest configuration and fixtures
"""

import pytest
from fastapi.testclient import TestClient
from tasktree.services.task_tree import TaskTreeStore
from tasktree.web.main import create_app
from tasktree.config.constants import PRINCIPAL_ID_HEADER, PRINCIPAL_NAME_HEADER


@pytest.fixture
def store():
    """Fresh in-memory store"""
    return TaskTreeStore()


@pytest.fixture
def app(store):
    """Application bound to the test store"""
    return create_app(store)


@pytest.fixture
def client(app):
    """HTTP test client"""
    return TestClient(app)


@pytest.fixture
def auth_headers():
    """Build identity headers for a caller"""
    def _headers(user_id: str = "u1", name: str = "user@example.com"):
        return {PRINCIPAL_ID_HEADER: user_id, PRINCIPAL_NAME_HEADER: name}
    return _headers


@pytest.fixture
def sample_tree(store):
    """
    Tree for owner u1:

        1 A
          2 A1
            4 A1a
          3 A2
        5 B
    """
    store.create("u1", "A")
    store.create_subtask("u1", 1, "A1")
    store.create_subtask("u1", 1, "A2")
    store.create_subtask("u1", 2, "A1a")
    store.create("u1", "B")
    return store
