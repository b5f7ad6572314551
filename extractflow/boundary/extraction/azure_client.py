"""
Azure Document Intelligence REST client.

Submits units to `documentModels/{model}:analyze` and polls the
`Operation-Location` URL the service returns.

Dependencies: httpx, tenacity
System role: Azure implementation of the ExtractionClient port
"""

import base64
import logging
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from extractflow.boundary.extraction.base import ExtractionResult, ExtractionStatus
from extractflow.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

_STATUS_MAP = {
    "notStarted": ExtractionStatus.RUNNING,
    "running": ExtractionStatus.RUNNING,
    "succeeded": ExtractionStatus.SUCCEEDED,
    "failed": ExtractionStatus.FAILED,
    "canceled": ExtractionStatus.FAILED,
}


class _RetryableResponseError(Exception):
    """Throttling or transient server error worth another attempt."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        super().__init__(f"HTTP {response.status_code}")


_retry_transient = retry(
    retry=retry_if_exception_type((httpx.TransportError, _RetryableResponseError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential_jitter(initial=1, max=10, jitter=1),
    before_sleep=lambda retry_state: logger.warning(
        f"{__name__}:{retry_state.fn.__name__} - Retry {retry_state.attempt_number}/3 "
        f"after {retry_state.outcome.exception()!r}"
    ),
    reraise=True,
)


class AzureDocumentIntelligenceClient:
    """Async client for the Document Intelligence analyze API."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        api_version: str = "2024-11-30",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            endpoint: Resource endpoint, e.g. https://<name>.cognitiveservices.azure.com
            api_key: Resource key sent as Ocp-Apim-Subscription-Key
            api_version: REST API version
            timeout: Per-request timeout in seconds
            http_client: Optional pre-built client (tests, shared pools)
        """
        self._endpoint = endpoint.rstrip("/")
        self._api_version = api_version
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Ocp-Apim-Subscription-Key": api_key},
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    @_retry_transient
    async def _post_analyze(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        response = await self._client.post(url, json=payload)
        if response.status_code in _RETRYABLE_STATUS_CODES:
            raise _RetryableResponseError(response)
        return response

    @_retry_transient
    async def _get_operation(self, operation_ref: str) -> httpx.Response:
        response = await self._client.get(operation_ref)
        if response.status_code in _RETRYABLE_STATUS_CODES:
            raise _RetryableResponseError(response)
        return response

    async def submit(self, file_bytes: bytes, model_id: str) -> str:
        """
        Start analysis of one unit.

        Args:
            file_bytes: Raw document bytes
            model_id: Prebuilt or custom model id (e.g. prebuilt-invoice)

        Returns:
            str: Operation-Location URL used as the operation reference

        Raises:
            ExternalServiceError: Non-202 response or missing Operation-Location
        """
        url = (
            f"{self._endpoint}/documentintelligence/documentModels/{model_id}:analyze"
            f"?api-version={self._api_version}"
        )
        payload = {"base64Source": base64.b64encode(file_bytes).decode("ascii")}

        try:
            response = await self._post_analyze(url, payload)
        except (httpx.TransportError, _RetryableResponseError) as e:
            raise ExternalServiceError(
                f"Extraction submit failed: {e}",
                details={"model_id": model_id},
            ) from e

        if response.status_code != 202:
            raise ExternalServiceError(
                f"Extraction submit rejected with HTTP {response.status_code}",
                details={"model_id": model_id, "body": response.text[:500]},
            )

        operation_ref = response.headers.get("Operation-Location")
        if not operation_ref:
            raise ExternalServiceError(
                "Extraction submit response has no Operation-Location header",
                details={"model_id": model_id},
            )

        logger.info(f"{__name__}:submit - Submitted unit to model {model_id}")
        return operation_ref

    async def poll(self, operation_ref: str) -> ExtractionResult:
        """
        Fetch the current state of an analyze operation.

        Args:
            operation_ref: Operation-Location URL returned by submit

        Returns:
            ExtractionResult: running, succeeded (with fields) or failed (with error)

        Raises:
            ExternalServiceError: The status could not be retrieved
        """
        try:
            response = await self._get_operation(operation_ref)
        except (httpx.TransportError, _RetryableResponseError) as e:
            raise ExternalServiceError(
                f"Extraction poll failed: {e}",
                operation_ref=operation_ref,
            ) from e

        if response.status_code != 200:
            raise ExternalServiceError(
                f"Extraction poll returned HTTP {response.status_code}",
                operation_ref=operation_ref,
            )

        body = response.json()
        status = _STATUS_MAP.get(body.get("status", ""), ExtractionStatus.RUNNING)

        if status == ExtractionStatus.SUCCEEDED:
            return ExtractionResult(status=status, fields=_first_document_fields(body))

        if status == ExtractionStatus.FAILED:
            error = body.get("error") or {}
            message = error.get("message") or f"Analysis {body.get('status')}"
            return ExtractionResult(status=status, error=message)

        return ExtractionResult(status=status)


def _first_document_fields(body: dict[str, Any]) -> dict[str, Any]:
    """Field map of the first analyzed document; empty when none was found."""
    documents = (body.get("analyzeResult") or {}).get("documents") or []
    if not documents:
        return {}
    return documents[0].get("fields") or {}
