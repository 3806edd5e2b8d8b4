"""
Ingestion boundary: the interface external fetchers implement.
"""

from worldwatch.datasource.base import IngestionSource
from worldwatch.datasource.files import JsonDirectorySource

__all__ = ["IngestionSource", "JsonDirectorySource"]
