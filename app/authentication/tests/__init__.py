"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User model tests
- test_managers.py: UserManager tests
- test_permissions.py: Account type permission tests

Usage:
    pytest authentication/tests/
"""
