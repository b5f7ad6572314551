"""
ExtractFlow: page-level document extraction orchestration.

Batches uploaded documents into sessions, routes every page to an external
extraction service, tracks credits, and packages renamed results.
"""

__version__ = "0.1.0"
