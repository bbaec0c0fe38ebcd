"""
Test helpers for the API test suite.
"""

from .auth_helpers import AuthHelpers

__all__ = ["AuthHelpers"]
