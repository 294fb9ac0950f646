"""Concurrent artifact upload with fail-fast aggregation.

Every artifact maps to a disjoint remote path, so uploads are independent
and dispatched as concurrent tasks. On the first failure the remaining
uploads are cancelled and the failure surfaces as a single
``DeploymentError``. Uploads that already completed stay deployed.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Protocol, Sequence

from ..concurrency import gather_fail_fast
from ..errors import DeploymentError
from ..models import Artifact, DeployResult
from ..observability.metrics import ARTIFACT_UPLOADS_TOTAL

logger = logging.getLogger(__name__)


class TransferClient(Protocol):
    """Remote transfer of one local file to the hosting bucket."""

    async def upload(
        self,
        *,
        env_id: str,
        local_path: Path,
        cloud_path: str,
        ignore: frozenset[str] = frozenset(),
    ) -> dict[str, Any]:
        """Upload ``local_path`` to ``cloud_path`` and return the API payload."""
        ...


class DeploymentDispatcher:
    """Uploads artifacts concurrently, preserving input order in results."""

    def __init__(
        self,
        transfer: TransferClient,
        *,
        env_id: str,
        max_concurrency: int | None = None,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError('max_concurrency must be >= 1')
        self._transfer = transfer
        self._env_id = env_id
        self._max_concurrency = max_concurrency

    async def deploy_all(self, artifacts: Sequence[Artifact]) -> list[DeployResult]:
        """Upload every artifact; return one result per artifact, in order.

        Raises:
            DeploymentError: The first upload to fail, in completion order.
                Pending and in-flight uploads are cancelled before it is
                raised, and also when the caller itself is cancelled.
        """
        if not artifacts:
            return []

        semaphore = (
            asyncio.Semaphore(self._max_concurrency)
            if self._max_concurrency is not None
            else None
        )
        return await gather_fail_fast(
            self._deploy_one(artifact, semaphore) for artifact in artifacts
        )

    async def _deploy_one(
        self,
        artifact: Artifact,
        semaphore: asyncio.Semaphore | None,
    ) -> DeployResult:
        if semaphore is None:
            return await self._upload(artifact)
        async with semaphore:
            return await self._upload(artifact)

    async def _upload(self, artifact: Artifact) -> DeployResult:
        try:
            payload = await self._transfer.upload(
                env_id=self._env_id,
                local_path=artifact.local_path,
                cloud_path=artifact.cloud_path,
                ignore=artifact.ignore,
            )
        except Exception as exc:
            ARTIFACT_UPLOADS_TOTAL.labels(status='error').inc()
            logger.warning(
                'Upload failed: %s -> %s',
                artifact.local_path,
                artifact.cloud_path,
                extra={'env_id': self._env_id, 'cloud_path': artifact.cloud_path},
            )
            raise DeploymentError(
                f'failed to deploy {artifact.local_path} to {artifact.cloud_path}: {exc}',
                artifact=artifact,
                env_id=self._env_id,
                operation='deploy',
            ) from exc
        ARTIFACT_UPLOADS_TOTAL.labels(status='ok').inc()
        return DeployResult(artifact=artifact, payload=payload or {})
