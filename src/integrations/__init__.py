"""
Document store integrations
"""

from .base import DocumentHandle, DocumentStore
from .vault import VaultIntegration

__all__ = ['DocumentHandle', 'DocumentStore', 'VaultIntegration']
