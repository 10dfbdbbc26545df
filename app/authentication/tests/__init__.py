"""
Tests for authentication app.

This package contains test modules for:
- test_managers.py: UserManager tests
- test_services.py: UserLookupService tests

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_services.py
"""
