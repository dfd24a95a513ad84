"""Shared pytest configuration and fixtures for Services Kit tests."""

import os

import pytest

from services_kit.core.config import ConfigSchema

# Fixture modules
pytest_plugins = ["tests.fixtures.mock_http", "tests.fixtures.oauth"]


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (fast, no external deps)")
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (HTTP mocked with respx)"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers to tests based on their location."""
    for item in items:
        path = str(item.fspath)
        if "tests/unit/" in path:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in path:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="function", autouse=True)
def isolated_environment():
    """Run every test without configuration variables from the outer shell."""
    names = [spec.name for spec in ConfigSchema.all_specs().values()]
    original_env = {name: os.environ.pop(name, None) for name in names}
    try:
        yield
    finally:
        for name, value in original_env.items():
            if value is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = value
