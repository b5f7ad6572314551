"""
Per-task async runtime for Celery workers.

Each task body runs in a fresh event loop via asyncio.run, so the database
engine and HTTP client are created inside that loop and disposed with it.

Dependencies: sqlalchemy, extractflow.boundary, extractflow.application
System role: Bridge between sync Celery tasks and async services
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from extractflow.application.services.processing_service import ProcessingService
from extractflow.boundary.extraction import AzureDocumentIntelligenceClient
from extractflow.boundary.storage import S3BlobStorage
from extractflow.configs import get_settings

T = TypeVar("T")


async def _with_processing_service(fn: Callable[[ProcessingService], Awaitable[T]]) -> T:
    settings = get_settings()
    engine = create_async_engine(settings.database.async_database_url, poolclass=NullPool)
    extraction_client = AzureDocumentIntelligenceClient(
        endpoint=settings.extraction.endpoint,
        api_key=settings.extraction.api_key,
        api_version=settings.extraction.api_version,
        timeout=settings.extraction.request_timeout,
    )
    storage = S3BlobStorage(bucket=settings.s3_storage.bucket, region=settings.s3_storage.region)
    factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False
    )
    try:
        async with factory() as db:
            return await fn(ProcessingService(db, storage, extraction_client, settings))
    finally:
        await extraction_client.aclose()
        await engine.dispose()


def run_processing(fn: Callable[[ProcessingService], Awaitable[T]]) -> T:
    """
    Run an async ProcessingService call to completion.

    Args:
        fn: Coroutine function receiving a ready ProcessingService

    Returns:
        Whatever fn returns
    """
    return asyncio.run(_with_processing_service(fn))
