import pytest


def pytest_collection_modifyitems(items):
    """Mark everything under tests/unit as a unit test."""
    for item in items:
        if "/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
