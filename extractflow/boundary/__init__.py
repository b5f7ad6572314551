"""Boundary adapters: database, blob storage, and the extraction service."""
