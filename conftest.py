"""
Repository-level pytest configuration.

Settings are loaded by pytest-django from pyproject.toml
(DJANGO_SETTINGS_MODULE=config.settings, pythonpath=app). Local defaults
come from .env.development. Project fixtures live in app/conftest.py.
"""

import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
