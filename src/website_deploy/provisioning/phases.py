"""Deployment run state machine.

Implements the lifecycle flow:
  uninitialized -> initializing -> building -> deploying -> done

And deterministic error transitions:
  any non-terminal phase -> failed

A failed or finished run is never resumed; a new run starts from
``uninitialized``. Each transition returns a new ``DeploymentRun``
snapshot so data captured in one phase (the hosting resource, the
artifact list) is visible to later phases only through the context.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType

from ..errors import InvalidPhaseTransition
from ..models import Artifact, EnvironmentDescriptor, HostingResource


class Phase(str, Enum):
    UNINITIALIZED = 'uninitialized'
    INITIALIZING = 'initializing'
    BUILDING = 'building'
    DEPLOYING = 'deploying'
    DONE = 'done'
    FAILED = 'failed'


PHASE_SEQUENCE = (
    Phase.UNINITIALIZED,
    Phase.INITIALIZING,
    Phase.BUILDING,
    Phase.DEPLOYING,
    Phase.DONE,
)

TERMINAL_PHASES = frozenset({Phase.DONE, Phase.FAILED})

ALLOWED_TRANSITIONS = MappingProxyType(
    {
        Phase.UNINITIALIZED: frozenset({Phase.INITIALIZING, Phase.FAILED}),
        Phase.INITIALIZING: frozenset({Phase.BUILDING, Phase.FAILED}),
        Phase.BUILDING: frozenset({Phase.DEPLOYING, Phase.FAILED}),
        Phase.DEPLOYING: frozenset({Phase.DONE, Phase.FAILED}),
        Phase.DONE: frozenset(),
        Phase.FAILED: frozenset(),
    }
)


@dataclass(frozen=True, slots=True)
class DeploymentRun:
    """Snapshot of one orchestration run.

    ``phase`` names the last phase entered. A phase is complete once the
    data it produces is present: ``hosting`` after initializing,
    ``artifacts`` after building.
    """

    env_id: str
    run_id: str
    phase: Phase = Phase.UNINITIALIZED
    environment: EnvironmentDescriptor | None = None
    hosting: HostingResource | None = None
    artifacts: tuple[Artifact, ...] | None = None
    phase_entered_at: datetime | None = None
    finished_at: datetime | None = None
    last_error_code: str | None = None
    last_error_detail: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def site_domain(self) -> str | None:
        """Public domain of the hosting resource, once it is ready."""
        if self.hosting is None or not self.hosting.is_ready:
            return None
        return self.hosting.domain


def new_run(*, env_id: str, run_id: str | None = None) -> DeploymentRun:
    """Create a fresh run in ``uninitialized``."""
    if not env_id:
        raise ValueError('env_id is required')
    return DeploymentRun(
        env_id=env_id,
        run_id=run_id or uuid.uuid4().hex[:12],
    )


def enter_phase(run: DeploymentRun, to_phase: Phase) -> DeploymentRun:
    """Move the run into ``to_phase``, enforcing the transition table."""
    if to_phase is Phase.FAILED:
        raise InvalidPhaseTransition(run.phase.value, to_phase.value)
    return _transition(run, to_phase=to_phase)


def record_initialized(
    run: DeploymentRun,
    *,
    environment: EnvironmentDescriptor,
    hosting: HostingResource,
) -> DeploymentRun:
    """Attach the results of the initializing phase."""
    _require_phase(run, Phase.INITIALIZING)
    return replace(run, environment=environment, hosting=hosting)


def record_built(
    run: DeploymentRun,
    *,
    artifacts: tuple[Artifact, ...],
) -> DeploymentRun:
    """Attach the artifact list produced by the building phase."""
    _require_phase(run, Phase.BUILDING)
    return replace(run, artifacts=artifacts)


def transition_to_failed(
    run: DeploymentRun,
    *,
    error_code: str,
    error_detail: str,
) -> DeploymentRun:
    """Move any non-terminal run to ``failed``."""
    return _transition(
        run,
        to_phase=Phase.FAILED,
        error_code=error_code,
        error_detail=error_detail,
    )


def _transition(
    run: DeploymentRun,
    *,
    to_phase: Phase,
    error_code: str | None = None,
    error_detail: str | None = None,
) -> DeploymentRun:
    allowed = ALLOWED_TRANSITIONS.get(run.phase, frozenset())
    if to_phase not in allowed:
        raise InvalidPhaseTransition(run.phase.value, to_phase.value)

    now = datetime.now(timezone.utc)
    return replace(
        run,
        phase=to_phase,
        phase_entered_at=now,
        finished_at=now if to_phase in TERMINAL_PHASES else None,
        last_error_code=error_code,
        last_error_detail=error_detail,
    )


def _require_phase(run: DeploymentRun, phase: Phase) -> None:
    if run.phase is not phase:
        raise InvalidPhaseTransition(run.phase.value, phase.value)
