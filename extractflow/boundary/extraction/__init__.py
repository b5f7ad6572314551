"""
Extraction service boundary.

Exports the extraction client protocol, result schema and the Azure
Document Intelligence implementation.
"""

from extractflow.boundary.extraction.azure_client import AzureDocumentIntelligenceClient
from extractflow.boundary.extraction.base import (
    ExtractionClient,
    ExtractionResult,
    ExtractionStatus,
)

__all__ = [
    "ExtractionClient",
    "ExtractionResult",
    "ExtractionStatus",
    "AzureDocumentIntelligenceClient",
]
