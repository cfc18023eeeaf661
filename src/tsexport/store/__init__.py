"""
Backing data stores for the export command.
"""

from .base import Store, StoreError
from .local import LocalStore

__all__ = ["Store", "StoreError", "LocalStore"]
