"""
Dependency injection container.

Factory functions for FastAPI dependencies: cached external clients,
caller identity and per-request services.

Dependencies: extractflow.configs, extractflow.application, extractflow.boundary
System role: DI container for service injection
"""

from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.application.services import AdminService, CreditService, SessionService
from extractflow.boundary.db import UserModel, UserRole, get_async_db, user_crud
from extractflow.boundary.extraction import AzureDocumentIntelligenceClient, ExtractionClient
from extractflow.boundary.storage import BlobStorage, S3BlobStorage
from extractflow.configs import get_settings


class ServiceCache:
    """Container for cached external client instances."""

    def __init__(self) -> None:
        self._storage = None
        self._extraction_client = None

    @property
    def storage(self) -> BlobStorage:
        """Get cached S3 blob storage."""
        if self._storage is None:
            settings = get_settings()
            self._storage = S3BlobStorage(
                bucket=settings.s3_storage.bucket,
                region=settings.s3_storage.region,
            )
        return self._storage

    @property
    def extraction_client(self) -> ExtractionClient:
        """Get cached extraction service client."""
        if self._extraction_client is None:
            config = get_settings().extraction
            self._extraction_client = AzureDocumentIntelligenceClient(
                endpoint=config.endpoint,
                api_key=config.api_key,
                api_version=config.api_version,
                timeout=config.request_timeout,
            )
        return self._extraction_client

    async def aclose(self) -> None:
        """Close clients holding network resources, then clear."""
        if self._extraction_client is not None:
            await self._extraction_client.aclose()
        self.clear()

    def clear(self) -> None:
        """Clear all cached instances."""
        self._storage = None
        self._extraction_client = None


# Global service cache
_service_cache = ServiceCache()


def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return _service_cache


def get_storage() -> BlobStorage:
    """Blob storage dependency."""
    return get_service_cache().storage


def get_extraction_client() -> ExtractionClient:
    """Extraction client dependency."""
    return get_service_cache().extraction_client


async def get_current_user(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_async_db),
) -> UserModel:
    """
    Resolve the caller from the X-User-Id header.

    Authentication happens upstream; this only maps the asserted id to a user.

    Raises:
        HTTPException(401): Missing, malformed or unknown user id
    """
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Malformed X-User-Id header")

    user = await user_crud.get_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return user


async def require_admin(user: UserModel = Depends(get_current_user)) -> UserModel:
    """
    Restrict a route to administrators.

    Raises:
        HTTPException(403): Caller is not an admin
    """
    if user.role != UserRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator role required")
    return user


def get_session_service(
    db: AsyncSession = Depends(get_async_db),
    storage: BlobStorage = Depends(get_storage),
) -> SessionService:
    """
    Get session service instance.

    Args:
        db: Async database session (injected via Depends)
        storage: Blob storage (injected via Depends)

    Returns:
        SessionService: Session service instance
    """
    return SessionService(db=db, storage=storage)


def get_credit_service(db: AsyncSession = Depends(get_async_db)) -> CreditService:
    """
    Get credit service instance.

    Args:
        db: Async database session (injected via Depends)

    Returns:
        CreditService: Credit service instance
    """
    return CreditService(db=db)


def get_admin_service(
    db: AsyncSession = Depends(get_async_db),
    storage: BlobStorage = Depends(get_storage),
) -> AdminService:
    """
    Get admin service instance.

    Args:
        db: Async database session (injected via Depends)
        storage: Blob storage (injected via Depends)

    Returns:
        AdminService: Admin service instance
    """
    return AdminService(db=db, storage=storage)
