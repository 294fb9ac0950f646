"""Hosting provisioner tests: fast path, poll loop, budget, cancellation."""

from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from website_deploy.cloud.client import CloudAPIError, CloudClient, HostingNotEnabledError
from website_deploy.errors import (
    ProvisioningCancelled,
    ProvisioningError,
    ProvisioningTimeoutError,
)
from website_deploy.inmemory import InMemoryCloud
from website_deploy.models import HostingState
from website_deploy.provisioning.hosting import HostingProvisioner, describe_wait

READY = [{'cdn_domain': 'env-1.example.com'}]


class _RecordingSleep:
    def __init__(self, cloud: InMemoryCloud | None = None) -> None:
        self.delays: list[float] = []
        self._cloud = cloud

    async def __call__(self, delay: float) -> None:
        if self._cloud is not None:
            self._cloud.calls.append(('sleep', str(delay)))
        self.delays.append(delay)


def _make(
    *responses,
    enable_fails: bool = False,
    **kwargs,
) -> tuple[HostingProvisioner, InMemoryCloud, _RecordingSleep]:
    cloud = InMemoryCloud(hosting_responses=responses, enable_fails=enable_fails)
    sleep = _RecordingSleep(cloud)
    kwargs.setdefault('sleep', sleep)
    provisioner = HostingProvisioner(cloud, **kwargs)
    return provisioner, cloud, sleep


# ── Fast path ────────────────────────────────────────────────────────


class TestAlreadyProvisioned:
    @pytest.mark.asyncio
    async def test_returns_first_record_as_ready(self):
        provisioner, _, _ = _make(READY + [{'cdn_domain': 'second.example.com'}])

        resource = await provisioner.ensure_ready('env-1')

        assert resource.state is HostingState.READY
        assert resource.domain == 'env-1.example.com'
        assert resource.env_id == 'env-1'
        assert resource.is_ready

    @pytest.mark.asyncio
    async def test_idempotent_single_lookup_each_call(self):
        provisioner, cloud, sleep = _make(READY)

        first = await provisioner.ensure_ready('env-1')
        second = await provisioner.ensure_ready('env-1')

        assert first.domain == second.domain
        assert cloud.calls == [
            ('get_hosting_info', 'env-1'),
            ('get_hosting_info', 'env-1'),
        ]
        assert cloud.count('enable_hosting') == 0
        assert sleep.delays == []


# ── Poll loop ────────────────────────────────────────────────────────


class TestPollLoop:
    @pytest.mark.asyncio
    async def test_empty_then_ready_runs_one_cycle(self):
        provisioner, cloud, sleep = _make([], READY, poll_delay_seconds=180)

        resource = await provisioner.ensure_ready('env-1')

        assert resource.domain == 'env-1.example.com'
        assert [name for name, _ in cloud.calls] == [
            'get_hosting_info',
            'enable_hosting',
            'sleep',
            'get_hosting_info',
        ]
        assert sleep.delays == [180.0]

    @pytest.mark.asyncio
    async def test_one_enable_per_cycle_until_ready(self):
        provisioner, cloud, sleep = _make([], [], [], READY, poll_delay_seconds=1)

        await provisioner.ensure_ready('env-1')

        assert cloud.count('get_hosting_info') == 4
        assert cloud.count('enable_hosting') == 3
        assert len(sleep.delays) == 3

    @pytest.mark.asyncio
    async def test_hosting_not_enabled_error_treated_as_absent(self):
        provisioner, cloud, _ = _make(HostingNotEnabledError(), READY)

        resource = await provisioner.ensure_ready('env-1')

        assert resource.is_ready
        assert cloud.count('enable_hosting') == 1

    @pytest.mark.asyncio
    async def test_transient_lookup_error_retried_in_lenient_mode(self):
        provisioner, cloud, _ = _make(CloudAPIError(503, 'unavailable'), READY)

        resource = await provisioner.ensure_ready('env-1')

        assert resource.is_ready
        assert cloud.count('enable_hosting') == 1

    @pytest.mark.asyncio
    async def test_lookup_error_surfaces_in_strict_mode(self):
        provisioner, cloud, _ = _make(CloudAPIError(500, 'boom'), READY, strict_lookup=True)

        with pytest.raises(ProvisioningError) as exc_info:
            await provisioner.ensure_ready('env-1')

        assert isinstance(exc_info.value.__cause__, CloudAPIError)
        assert cloud.count('enable_hosting') == 0

    @pytest.mark.asyncio
    async def test_strict_mode_still_treats_not_enabled_as_absent(self):
        provisioner, _, _ = _make(HostingNotEnabledError(), READY, strict_lookup=True)

        resource = await provisioner.ensure_ready('env-1')

        assert resource.is_ready

    @pytest.mark.asyncio
    async def test_non_api_lookup_error_retried_in_lenient_mode(self):
        provisioner, cloud, sleep = _make(RuntimeError('provider down'), READY)

        resource = await provisioner.ensure_ready('env-1')

        assert resource.is_ready
        assert cloud.count('enable_hosting') == 1
        assert len(sleep.delays) == 1

    @pytest.mark.asyncio
    async def test_non_api_lookup_error_wrapped_in_strict_mode(self):
        provisioner, _, _ = _make(RuntimeError('provider down'), READY, strict_lookup=True)

        with pytest.raises(ProvisioningError) as exc_info:
            await provisioner.ensure_ready('env-1')

        assert exc_info.value.operation == 'get_hosting_info'
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_connection_failure_through_cloud_client_is_retried(self):
        lookups = []

        def _handler(request: httpx.Request) -> httpx.Response:
            if request.method == 'POST':
                return httpx.Response(202, json={'status': 'pending'})
            lookups.append(request)
            if len(lookups) == 1:
                raise httpx.ConnectError('connection refused', request=request)
            return httpx.Response(200, json={'data': READY})

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(_handler))
        client = CloudClient(
            bearer_token='tok',
            base_url='https://cloud.test',
            http_client=http_client,
            max_retries=0,
        )
        sleep = _RecordingSleep()
        provisioner = HostingProvisioner(client, sleep=sleep)

        try:
            resource = await provisioner.ensure_ready('env-1')
        finally:
            await http_client.aclose()

        assert resource.domain == 'env-1.example.com'
        assert len(lookups) == 2
        assert sleep.delays == [180.0]

    @pytest.mark.asyncio
    async def test_record_without_domain_waits_without_reenabling(self):
        provisioner, cloud, sleep = _make([{'status': 'creating'}], READY)

        resource = await provisioner.ensure_ready('env-1')

        assert resource.is_ready
        assert cloud.count('enable_hosting') == 0
        assert len(sleep.delays) == 1

    @pytest.mark.asyncio
    async def test_enable_failure_stops_loop(self):
        provisioner, cloud, sleep = _make([], READY, enable_fails=True)

        with pytest.raises(ProvisioningError) as exc_info:
            await provisioner.ensure_ready('env-1')

        assert exc_info.value.operation == 'enable_hosting'
        assert cloud.count('get_hosting_info') == 1
        assert sleep.delays == []


# ── Budget and cancellation ──────────────────────────────────────────


class TestBounds:
    @pytest.mark.asyncio
    async def test_max_attempts_exhausted(self):
        provisioner, cloud, _ = _make([], max_attempts=2)

        with pytest.raises(ProvisioningTimeoutError) as exc_info:
            await provisioner.ensure_ready('env-1')

        assert exc_info.value.attempts == 2
        assert cloud.count('enable_hosting') == 2
        assert cloud.count('get_hosting_info') == 3

    @pytest.mark.asyncio
    async def test_ready_on_last_lookup_within_budget(self):
        provisioner, _, _ = _make([], [], READY, max_attempts=2)

        resource = await provisioner.ensure_ready('env-1')

        assert resource.is_ready

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            HostingProvisioner(InMemoryCloud(), max_attempts=0)

    @pytest.mark.asyncio
    async def test_cancel_event_set_before_start(self):
        cancel = asyncio.Event()
        cancel.set()
        cloud = InMemoryCloud(hosting_responses=[[]])
        provisioner = HostingProvisioner(cloud, cancel_event=cancel)

        with pytest.raises(ProvisioningCancelled):
            await provisioner.ensure_ready('env-1')
        assert cloud.calls == []

    @pytest.mark.asyncio
    async def test_cancel_event_interrupts_wait(self):
        cancel = asyncio.Event()
        cloud = InMemoryCloud(hosting_responses=[[]])
        provisioner = HostingProvisioner(
            cloud,
            poll_delay_seconds=3600,
            cancel_event=cancel,
        )

        task = asyncio.create_task(provisioner.ensure_ready('env-1'))
        while cloud.count('enable_hosting') == 0:
            await asyncio.sleep(0)
        cancel.set()

        with pytest.raises(ProvisioningCancelled):
            await asyncio.wait_for(task, timeout=5)
        assert cloud.count('get_hosting_info') == 1

    @pytest.mark.asyncio
    async def test_real_sleep_used_without_injection(self):
        cloud = InMemoryCloud(hosting_responses=[[], READY])
        provisioner = HostingProvisioner(cloud, poll_delay_seconds=0)

        resource = await provisioner.ensure_ready('env-1')

        assert resource.is_ready


# ── Wait message ─────────────────────────────────────────────────────


class TestWaitMessage:
    @pytest.mark.parametrize(
        ('seconds', 'expected'),
        [
            (0, '1 second'),
            (1, '1 second'),
            (30, '30 seconds'),
            (59.5, '60 seconds'),
            (60, '1 minute'),
            (90, '2 minutes'),
            (180, '3 minutes'),
        ],
    )
    def test_describe_wait(self, seconds, expected):
        assert describe_wait(seconds) == expected

    @pytest.mark.asyncio
    async def test_short_delay_logged_in_seconds(self, caplog):
        provisioner, _, _ = _make([], READY, poll_delay_seconds=30)

        with caplog.at_level(logging.INFO, logger='website_deploy.provisioning.hosting'):
            await provisioner.ensure_ready('env-1')

        assert 'expected wait ~30 seconds' in caplog.text
        assert 'minutes' not in caplog.text
