"""Mark every test collected under tests/integration as an integration test."""

import pytest


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "integration" in item.path.parts:
            item.add_marker(pytest.mark.integration)
