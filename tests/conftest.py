"""
Pytest configuration and fixtures.
"""
import pytest
from fastapi.testclient import TestClient

from catalog import database
from catalog.models import Category


@pytest.fixture
def database_ready():
    """Fresh in-memory SQLite database for each test."""
    database.init_db("sqlite://")
    yield
    database.close_db()


@pytest.fixture
def db(database_ready):
    """A session on the test database."""
    session = database.get_session()
    yield session
    session.close()


@pytest.fixture
def client(database_ready):
    """API client; every request gets its own session via get_db."""
    from catalog.main import app
    return TestClient(app)


@pytest.fixture
def make_category(db):
    """Insert a category row directly, bypassing the service checks."""
    def _make(name, parent_id=None, sort_order=0, is_visible=True, slug=None):
        category = Category(
            name=name,
            slug=slug or name.lower().replace(" ", "-"),
            parent_id=parent_id,
            sort_order=sort_order,
            is_visible=is_visible,
        )
        db.add(category)
        db.flush()
        return category
    return _make


@pytest.fixture
def sample_tree(make_category):
    """A(1, root, 1), B(2, root, 2), C(3, under A, 1)."""
    a = make_category("A", sort_order=1)
    b = make_category("B", sort_order=2)
    c = make_category("C", parent_id=a.id, sort_order=1)
    return a, b, c
