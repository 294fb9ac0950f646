"""Static hosting provisioning with a fixed-delay poll loop.

Enabling hosting is asynchronous on the cloud side and there is no
completion callback, so the provisioner loops:

  lookup -> (records with a domain) -> ready
         -> (absent) -> enable -> wait poll_delay -> lookup ...

The loop is bounded by ``max_attempts`` (None keeps polling until a
record appears) and can be interrupted through ``cancel_event``.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Awaitable, Callable, Protocol

from ..cloud.client import CloudNotFoundError
from ..errors import (
    ProvisioningCancelled,
    ProvisioningError,
    ProvisioningTimeoutError,
)
from ..models import HostingResource
from ..observability.metrics import HOSTING_ENABLE_REQUESTS_TOTAL
from ..settings import DEFAULT_POLL_DELAY_SECONDS

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


def describe_wait(seconds: float) -> str:
    """Human-readable poll delay: seconds under a minute, whole minutes above."""
    if seconds < 60:
        value, unit = max(1, math.ceil(seconds)), 'second'
    else:
        value, unit = math.ceil(seconds / 60), 'minute'
    return f'{value} {unit}' if value == 1 else f'{value} {unit}s'


class HostingApi(Protocol):
    """Hosting info query and enable mutation for one environment."""

    async def get_hosting_info(self, env_id: str) -> list[dict[str, Any]]:
        """Return zero or more hosting records; each may carry ``cdn_domain``."""
        ...

    async def enable_hosting(self, env_id: str) -> dict[str, Any]:
        """Request hosting; completes asynchronously on the cloud side."""
        ...


class HostingProvisioner:
    """Ensures a ready static hosting resource exists for an environment."""

    def __init__(
        self,
        hosting: HostingApi,
        *,
        poll_delay_seconds: float = DEFAULT_POLL_DELAY_SECONDS,
        max_attempts: int | None = None,
        strict_lookup: bool = False,
        cancel_event: asyncio.Event | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        if max_attempts is not None and max_attempts < 1:
            raise ValueError('max_attempts must be >= 1')
        self._hosting = hosting
        self._poll_delay = float(poll_delay_seconds)
        self._max_attempts = max_attempts
        self._strict_lookup = strict_lookup
        self._cancel_event = cancel_event
        self._sleep = sleep

    async def ensure_ready(self, env_id: str) -> HostingResource:
        """Return the environment's hosting resource, enabling it if absent.

        When hosting already exists this is a single lookup with no side
        effects.

        Raises:
            ProvisioningError: The enable request failed, or (strict mode)
                the lookup failed with anything other than not-found.
            ProvisioningTimeoutError: ``max_attempts`` cycles passed without
                a ready record.
            ProvisioningCancelled: ``cancel_event`` was set while waiting.
        """
        attempts = 0
        while True:
            self._raise_if_cancelled(env_id)

            resource = await self._lookup(env_id)
            if resource is not None and resource.is_ready:
                logger.info(
                    'Static hosting ready: %s',
                    resource.domain,
                    extra={'env_id': env_id, 'domain': resource.domain},
                )
                return resource

            if self._max_attempts is not None and attempts >= self._max_attempts:
                raise ProvisioningTimeoutError(
                    f'static hosting for {env_id!r} not ready after '
                    f'{attempts} provisioning attempts',
                    attempts=attempts,
                    env_id=env_id,
                    operation='ensure_hosting',
                )

            attempts += 1
            if resource is None:
                await self._enable(env_id)
            else:
                logger.debug(
                    'Hosting record for %s has no domain yet',
                    env_id,
                    extra={'env_id': env_id, 'attempt': attempts},
                )

            logger.info(
                'Hosting resources initializing, expected wait ~%s',
                describe_wait(self._poll_delay),
                extra={'env_id': env_id, 'attempt': attempts},
            )
            await self._wait(env_id)

    async def _lookup(self, env_id: str) -> HostingResource | None:
        """Query hosting info; None means not yet provisioned."""
        try:
            records = await self._hosting.get_hosting_info(env_id)
        except CloudNotFoundError as exc:
            logger.debug('Hosting not enabled for %s: %s', env_id, exc)
            return None
        except Exception as exc:
            if self._strict_lookup:
                raise ProvisioningError(
                    f'hosting lookup failed for {env_id!r}: {exc}',
                    env_id=env_id,
                    operation='get_hosting_info',
                ) from exc
            logger.warning(
                'Hosting lookup failed for %s, treating as not yet provisioned',
                env_id,
                extra={'env_id': env_id},
                exc_info=True,
            )
            return None

        if not records:
            return None
        return HostingResource.from_record(env_id, records[0])

    async def _enable(self, env_id: str) -> None:
        try:
            await self._hosting.enable_hosting(env_id)
        except Exception as exc:
            HOSTING_ENABLE_REQUESTS_TOTAL.labels(outcome='error').inc()
            raise ProvisioningError(
                f'failed to enable static hosting for {env_id!r}: {exc}',
                env_id=env_id,
                operation='enable_hosting',
            ) from exc
        HOSTING_ENABLE_REQUESTS_TOTAL.labels(outcome='ok').inc()

    async def _wait(self, env_id: str) -> None:
        if self._sleep is not None:
            await self._sleep(self._poll_delay)
            return
        if self._cancel_event is None:
            await asyncio.sleep(self._poll_delay)
            return
        try:
            await asyncio.wait_for(self._cancel_event.wait(), timeout=self._poll_delay)
        except asyncio.TimeoutError:
            return
        self._raise_if_cancelled(env_id)

    def _raise_if_cancelled(self, env_id: str) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise ProvisioningCancelled(
                f'provisioning for {env_id!r} was cancelled',
                env_id=env_id,
                operation='ensure_hosting',
            )
