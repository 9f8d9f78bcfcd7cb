"""
Base repository components.
"""

from kosan.repositories.base.api_client import ApiClient

__all__ = ["ApiClient"]
