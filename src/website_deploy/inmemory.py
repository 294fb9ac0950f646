"""In-memory control-plane implementations for local runs and tests.

They satisfy the EnvironmentLookup, HostingApi and TransferClient
protocols, store everything in dicts, and record every call in order.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Iterable

from .cloud.client import CloudAPIError


class InMemoryCloud:
    """Fake control plane with scripted hosting-info responses.

    ``hosting_responses`` is consumed one entry per ``get_hosting_info``
    call; each entry is a list of records or an exception to raise. Once
    exhausted, the last entry repeats.
    """

    def __init__(
        self,
        *,
        environments: Iterable[dict[str, Any]] = (),
        hosting_responses: Iterable[list[dict[str, Any]] | Exception] = ([],),
        enable_fails: bool = False,
    ) -> None:
        self.environments = [dict(e) for e in environments]
        self._hosting_responses = list(hosting_responses) or [[]]
        self.enable_fails = enable_fails
        self.calls: list[tuple[str, str]] = []

    async def list_environments(self) -> list[dict[str, Any]]:
        self.calls.append(('list_environments', ''))
        return [dict(e) for e in self.environments]

    async def get_hosting_info(self, env_id: str) -> list[dict[str, Any]]:
        self.calls.append(('get_hosting_info', env_id))
        if len(self._hosting_responses) > 1:
            response = self._hosting_responses.pop(0)
        else:
            response = self._hosting_responses[0]
        if isinstance(response, Exception):
            raise response
        return [dict(r) for r in response]

    async def enable_hosting(self, env_id: str) -> dict[str, Any]:
        self.calls.append(('enable_hosting', env_id))
        if self.enable_fails:
            raise CloudAPIError(500, 'enable hosting failed')
        return {'env_id': env_id, 'status': 'pending'}

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)


class InMemoryTransfer:
    """Fake transfer client that stores uploaded bytes by cloud path."""

    def __init__(
        self,
        *,
        fail_paths: Iterable[str] = (),
        delay_seconds: float = 0.0,
    ) -> None:
        self.fail_paths = frozenset(fail_paths)
        self.delay_seconds = delay_seconds
        self.files: dict[str, bytes] = {}
        self.calls: list[str] = []
        self.cancelled: list[str] = []

    async def upload(
        self,
        *,
        env_id: str,
        local_path: Path,
        cloud_path: str,
        ignore: frozenset[str] = frozenset(),
    ) -> dict[str, Any]:
        self.calls.append(cloud_path)
        if cloud_path in self.fail_paths:
            raise CloudAPIError(502, f'upload rejected: {cloud_path}')
        try:
            if self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
        except asyncio.CancelledError:
            self.cancelled.append(cloud_path)
            raise
        self.files[cloud_path] = Path(local_path).read_bytes()
        return {'env_id': env_id, 'cloud_path': cloud_path}
