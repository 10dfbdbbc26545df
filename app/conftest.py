"""
Shared pytest configuration for the Django apps.

This module configures test-only settings and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import pytest

TEST_STRIPE_SECRET_KEY = "sk_test_123"
TEST_STRIPE_WEBHOOK_SECRET = "whsec_test_secret"


def pytest_configure():
    """Configure Django settings before tests run."""
    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests (PBKDF2 is too slow with 870K iterations)
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    # The test client speaks plain HTTP
    settings.SECURE_SSL_REDIRECT = False


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_views.py, test_services.py, test_handlers.py, etc. → integration
    - test_models.py, test_helpers.py, test_stripe_adapter.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_handlers.py",
        "test_renewal_service.py",
        "test_refund_service.py",
        "test_payment_session_service.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_helpers.py",
        "test_managers.py",
        "test_states.py",
        "test_stripe_adapter.py",
        "test_checkout_service.py",
    ]

    for item in items:
        # Skip if test already has unit/integration marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def stripe_settings(settings):
    """Configure Stripe credentials and checkout URLs for every test."""
    settings.STRIPE_SECRET_KEY = TEST_STRIPE_SECRET_KEY
    settings.STRIPE_WEBHOOK_SECRET = TEST_STRIPE_WEBHOOK_SECRET
    settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS = 300
    settings.STRIPE_CONFIRM_LOOKBACK_DAYS = 2
    settings.PAYMENT_SUCCESS_URL = "https://billing.example.com/payment/success"
    settings.PAYMENT_CANCEL_URL = "https://billing.example.com/payment/cancel"
    settings.PAYMENT_PROCESSOR_NAME = "Stripe"
    return settings
