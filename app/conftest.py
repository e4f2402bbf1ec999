"""
Project-wide pytest hooks.

Fixtures live next to the tests that use them (each app's tests/conftest.py).
This module only tunes settings for speed and tags tests by layer so
`pytest -m unit` runs the database-free subset.
"""

import pytest

# Modules whose tests never touch the database or the network.
UNIT_TEST_MODULES = frozenset(
    {
        "test_adapter.py",
        "test_fee_split.py",
        "test_managers.py",
        "test_models.py",
    }
)


def pytest_configure():
    from django.conf import settings

    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}
    # The default PBKDF2 hasher dominates runtime for user-heavy fixtures.
    settings.PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]


def pytest_collection_modifyitems(items):
    """Mark each test unit or integration unless it is already marked."""
    for item in items:
        if any(item.iter_markers(name="unit")) or any(item.iter_markers(name="integration")):
            continue
        if item.path.name in UNIT_TEST_MODULES:
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)
