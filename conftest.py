"""
Root pytest configuration for the Django project.

pytest-django loads config.settings (see pyproject.toml). App-specific
fixtures are defined in each app's tests/conftest.py.
"""

import os

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
