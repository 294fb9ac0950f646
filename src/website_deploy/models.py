"""Value objects shared across provisioning, build, and deploy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping


class BillingMode(str, Enum):
    PREPAID = 'prepaid'
    POSTPAID = 'postpaid'
    UNKNOWN = 'unknown'

    @classmethod
    def parse(cls, raw: str | None) -> BillingMode:
        """Map an API pay-mode string to a BillingMode, never raising."""
        normalized = (raw or '').strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        return cls.UNKNOWN

    @property
    def is_usage_based(self) -> bool:
        return self is BillingMode.POSTPAID


class HostingState(str, Enum):
    ABSENT = 'absent'
    PROVISIONING = 'provisioning'
    READY = 'ready'


@dataclass(frozen=True, slots=True)
class EnvironmentDescriptor:
    """One cloud environment as reported by the environment listing."""

    env_id: str
    billing_mode: BillingMode


@dataclass(frozen=True, slots=True)
class HostingResource:
    """Static hosting backend bound to a single environment.

    ``domain`` is only meaningful once ``state`` is ``ready``.
    """

    env_id: str
    state: HostingState = HostingState.ABSENT
    domain: str = ''
    raw: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_ready(self) -> bool:
        return self.state is HostingState.READY and bool(self.domain)

    @classmethod
    def from_record(cls, env_id: str, record: Mapping[str, Any]) -> HostingResource:
        """Build a resource from a hosting-info record.

        A record without a CDN domain is still being provisioned.
        """
        domain = str(record.get('cdn_domain') or record.get('domain') or '').strip()
        state = HostingState.READY if domain else HostingState.PROVISIONING
        return cls(
            env_id=env_id,
            state=state,
            domain=domain,
            raw=MappingProxyType(dict(record)),
        )


@dataclass(frozen=True, slots=True)
class Artifact:
    """One deployable file tagged with its remote destination."""

    local_path: Path
    cloud_path: str
    ignore: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class DeployResult:
    artifact: Artifact
    payload: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def cloud_path(self) -> str:
        return self.artifact.cloud_path


@dataclass(frozen=True, slots=True)
class DeploymentOutcome:
    """Success value of a deploy: per-artifact results plus the site URL."""

    results: tuple[DeployResult, ...]
    url: str


@dataclass(frozen=True, slots=True)
class StepOutcome:
    """Result of a best-effort step the orchestrator logs and discards."""

    name: str
    ok: bool
    detail: str = ''
