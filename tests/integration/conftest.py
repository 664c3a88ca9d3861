import pytest


def pytest_collection_modifyitems(items):
    """Mark everything under tests/integration as an integration test."""
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
