"""
Root pytest configuration for the Django project.

Points pytest at the test settings when it is invoked from the repository
root. App-level configuration lives in app/conftest.py; app-specific
fixtures are defined in each app's tests/conftest.py.
"""

import os

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings_test")
