"""Environment precondition check: hosting requires usage-based billing."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from ..errors import EnvironmentNotFound, UnsupportedBillingMode
from ..models import BillingMode, EnvironmentDescriptor

logger = logging.getLogger(__name__)


class EnvironmentLookup(Protocol):
    """Environment listing for the current account."""

    async def list_environments(self) -> list[dict[str, Any]]:
        """Return environment records with ``env_id`` and ``pay_mode``."""
        ...


class PreconditionChecker:
    """Verifies the target environment exists and is billed postpaid.

    The environment list is fetched on every call; descriptors are never
    cached. Failures are terminal and never retried.
    """

    def __init__(self, environments: EnvironmentLookup) -> None:
        self._environments = environments

    async def check(self, env_id: str) -> EnvironmentDescriptor:
        records = await self._environments.list_environments()
        record = next(
            (r for r in records if _record_env_id(r) == env_id),
            None,
        )
        if record is None:
            raise EnvironmentNotFound(
                f'environment {env_id!r} does not exist for this account',
                env_id=env_id,
                operation='check_preconditions',
            )

        descriptor = EnvironmentDescriptor(
            env_id=env_id,
            billing_mode=BillingMode.parse(record.get('pay_mode')),
        )
        if not descriptor.billing_mode.is_usage_based:
            raise UnsupportedBillingMode(
                f'static hosting requires a postpaid (usage-based) environment; '
                f'{env_id!r} is {descriptor.billing_mode.value!r}. '
                'Switch the billing mode in the console and retry.',
                billing_mode=descriptor.billing_mode.value,
                env_id=env_id,
                operation='check_preconditions',
            )

        logger.debug(
            'Preconditions satisfied for %s',
            env_id,
            extra={'env_id': env_id, 'billing_mode': descriptor.billing_mode.value},
        )
        return descriptor


def _record_env_id(record: dict[str, Any]) -> str | None:
    return record.get('env_id') or record.get('EnvId')
