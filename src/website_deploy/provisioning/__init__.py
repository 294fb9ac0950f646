"""Environment preconditions, hosting provisioning, and the run state machine."""

from .hosting import HostingApi, HostingProvisioner
from .phases import (
    ALLOWED_TRANSITIONS,
    PHASE_SEQUENCE,
    DeploymentRun,
    Phase,
    enter_phase,
    new_run,
    record_built,
    record_initialized,
    transition_to_failed,
)
from .preconditions import EnvironmentLookup, PreconditionChecker

__all__ = [
    'ALLOWED_TRANSITIONS',
    'PHASE_SEQUENCE',
    'DeploymentRun',
    'EnvironmentLookup',
    'HostingApi',
    'HostingProvisioner',
    'Phase',
    'PreconditionChecker',
    'enter_phase',
    'new_run',
    'record_built',
    'record_initialized',
    'transition_to_failed',
]
