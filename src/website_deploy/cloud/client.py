"""Async HTTP client for the cloud control-plane and hosting file API.

Provides environment listing, hosting info/enable, and file upload against
the control-plane REST API. Auth uses a static bearer token. Includes
exponential backoff with jitter for transient errors and Retry-After
header respect for 429 responses.

Satisfies the ``EnvironmentLookup``, ``HostingApi`` and ``TransferClient``
protocols consumed by the orchestrator.
"""

from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Status codes eligible for automatic retry.
_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

_DEFAULT_MAX_RETRIES = 3
_DEFAULT_BASE_DELAY = 1.0  # seconds
_DEFAULT_MAX_DELAY = 30.0  # seconds

HOSTING_NOT_ENABLED_CODE = 'hosting_not_enabled'


# ── Exception hierarchy ─────────────────────────────────────────


class CloudAPIError(Exception):
    """Base exception for control-plane API errors."""

    def __init__(
        self,
        status_code: int,
        message: str = '',
        *,
        response_body: str = '',
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        super().__init__(f'Cloud API error {status_code}: {message}')


class CloudNotFoundError(CloudAPIError):
    """Resource not found (404)."""

    def __init__(self, message: str = 'Not found', **kwargs: Any) -> None:
        super().__init__(404, message, **kwargs)


class HostingNotEnabledError(CloudNotFoundError):
    """Static hosting has not been enabled for the environment yet."""

    def __init__(self, message: str = 'Static hosting not enabled', **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class CloudTimeoutError(CloudAPIError):
    """Request to the control plane timed out."""

    def __init__(self, message: str = 'Request timed out') -> None:
        super().__init__(0, message)


class CloudConnectionError(CloudAPIError):
    """The control plane could not be reached (connect, read or protocol failure)."""

    def __init__(self, message: str = 'Connection failed') -> None:
        super().__init__(0, message)


# ── Client ───────────────────────────────────────────────────────


class CloudClient:
    """Async HTTP client for environment, hosting, and file endpoints.

    The caller owns ``http_client``; when omitted, one is created lazily
    and released by :meth:`aclose`.
    """

    def __init__(
        self,
        *,
        bearer_token: str,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
        max_retries: int = _DEFAULT_MAX_RETRIES,
        base_delay: float = _DEFAULT_BASE_DELAY,
        max_delay: float = _DEFAULT_MAX_DELAY,
    ) -> None:
        if not bearer_token:
            raise ValueError('bearer_token is required')

        self._bearer_token = bearer_token
        self._base_url = base_url.rstrip('/')
        self._client = http_client
        self._owns_client = http_client is None
        self._timeout = float(timeout_seconds)
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._max_delay = max_delay

    async def __aenter__(self) -> CloudClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        return {'Authorization': f'Bearer {self._bearer_token}'}

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        body = resp.text
        message = body[:200] if body else f'HTTP {resp.status_code}'
        code = None

        try:
            payload = resp.json()
            if isinstance(payload, dict):
                message = payload.get('error', payload.get('message', message))
                code = payload.get('code')
        except ValueError:
            pass

        if resp.status_code == 404:
            if code == HOSTING_NOT_ENABLED_CODE:
                raise HostingNotEnabledError(message=message, response_body=body)
            raise CloudNotFoundError(message=message, response_body=body)

        raise CloudAPIError(
            status_code=resp.status_code,
            message=message,
            response_body=body,
        )

    async def _request_with_retry(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        params: dict[str, str] | None = None,
        content: bytes | None = None,
    ) -> httpx.Response:
        """Execute an HTTP request with exponential backoff retry for transient errors."""
        url = f'{self._base_url}{path}'
        headers = self._auth_headers()

        for attempt in range(self._max_retries + 1):
            try:
                resp = await self._http().request(
                    method,
                    url,
                    headers=headers,
                    json=json,
                    params=params,
                    content=content,
                    timeout=self._timeout,
                )
            except httpx.TimeoutException as e:
                if attempt < self._max_retries:
                    delay = self._backoff_delay(attempt)
                    logger.warning(
                        'Cloud request timeout (attempt %d/%d), retrying in %.1fs',
                        attempt + 1,
                        self._max_retries + 1,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise CloudTimeoutError(str(e)) from e
            except httpx.TransportError as e:
                if attempt < self._max_retries:
                    delay = self._backoff_delay(attempt)
                    logger.warning(
                        'Cloud request failed: %s (attempt %d/%d), retrying in %.1fs',
                        e,
                        attempt + 1,
                        self._max_retries + 1,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise CloudConnectionError(str(e) or type(e).__name__) from e

            if resp.status_code not in _RETRYABLE_STATUS_CODES:
                return resp

            if attempt >= self._max_retries:
                return resp

            delay = self._retry_after_delay(resp, attempt)
            logger.warning(
                'Cloud %s %s returned %d (attempt %d/%d), retrying in %.1fs',
                method,
                path,
                resp.status_code,
                attempt + 1,
                self._max_retries + 1,
                delay,
            )
            await asyncio.sleep(delay)

        raise CloudAPIError(0, 'exhausted retries with no response')

    def _backoff_delay(self, attempt: int) -> float:
        """Exponential backoff with full jitter."""
        delay = min(self._base_delay * (2 ** attempt), self._max_delay)
        return random.uniform(0, delay)

    def _retry_after_delay(self, resp: httpx.Response, attempt: int) -> float:
        """Use Retry-After header if present, otherwise exponential backoff."""
        retry_after = resp.headers.get('retry-after')
        if retry_after:
            try:
                return max(float(retry_after), 0.1)
            except ValueError:
                pass
        return self._backoff_delay(attempt)

    # ── Public API ───────────────────────────────────────────────

    async def list_environments(self) -> list[dict[str, Any]]:
        """List environments visible to the account."""
        resp = await self._request_with_retry('GET', '/v1/environments')
        self._raise_for_status(resp)

        payload = resp.json()
        envs = payload.get('environments') if isinstance(payload, dict) else payload
        if not isinstance(envs, list):
            raise CloudAPIError(
                status_code=0,
                message=f'Expected environment list, got {type(envs).__name__}',
            )
        return envs

    async def get_hosting_info(self, env_id: str) -> list[dict[str, Any]]:
        """Return hosting records for an environment (possibly empty).

        Raises HostingNotEnabledError if hosting was never enabled.
        """
        resp = await self._request_with_retry('GET', f'/v1/environments/{env_id}/hosting')
        self._raise_for_status(resp)

        payload = resp.json()
        records = payload.get('data') if isinstance(payload, dict) else payload
        if records is None:
            return []
        if not isinstance(records, list):
            raise CloudAPIError(
                status_code=0,
                message=f'Expected hosting record list, got {type(records).__name__}',
            )
        return records

    async def enable_hosting(self, env_id: str) -> dict[str, Any]:
        """Request static hosting for an environment.

        Completes asynchronously on the cloud side; poll get_hosting_info.
        """
        resp = await self._request_with_retry('POST', f'/v1/environments/{env_id}/hosting')
        self._raise_for_status(resp)
        logger.info(
            'Hosting enable requested: env_id=%s',
            env_id,
            extra={'env_id': env_id},
        )
        return resp.json() if resp.content else {}

    async def upload(
        self,
        *,
        env_id: str,
        local_path: Path,
        cloud_path: str,
        ignore: frozenset[str] = frozenset(),
    ) -> dict[str, Any]:
        """Upload one file to the environment's hosting bucket at cloud_path.

        ``ignore`` only applies to directory sources; single files are sent as-is.
        """
        content = await asyncio.to_thread(Path(local_path).read_bytes)
        resp = await self._request_with_retry(
            'PUT',
            f'/v1/environments/{env_id}/hosting/files',
            params={'path': cloud_path},
            content=content,
        )
        self._raise_for_status(resp)
        logger.debug(
            'Uploaded %s -> %s',
            local_path,
            cloud_path,
            extra={'env_id': env_id, 'cloud_path': cloud_path},
        )
        return resp.json() if resp.content else {'cloud_path': cloud_path}
