"""
Pytest configuration for Django tests.

pytest-django reads DJANGO_SETTINGS_MODULE from pyproject.toml and creates
the test database; the default here covers running outside that config.
"""
import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'storefront.settings')
os.environ.setdefault('DB_ENGINE', 'sqlite')
os.environ.setdefault('LOG_FORMAT', 'plain')
