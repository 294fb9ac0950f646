"""Typed error hierarchy for website provisioning, build, and deploy.

All errors carry structured context (env_id, operation) for logging.
Messages are safe to surface to the user: they never include API tokens.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import Artifact


class WebsiteDeployError(Exception):
    """Base error for all website deployment operations."""

    code = 'website_deploy_error'

    def __init__(
        self,
        message: str,
        *,
        env_id: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.env_id = env_id
        self.operation = operation
        super().__init__(message)

    def __repr__(self) -> str:
        parts = [f'{type(self).__name__}({self.args[0]!r}']
        if self.env_id:
            parts.append(f'env_id={self.env_id!r}')
        if self.operation:
            parts.append(f'operation={self.operation!r}')
        return ', '.join(parts) + ')'


class ConfigError(WebsiteDeployError, ValueError):
    """Website inputs or runtime settings are invalid."""

    code = 'config_invalid'


class EnvironmentNotFound(WebsiteDeployError):
    """The named environment does not exist for the account."""

    code = 'environment_not_found'


class UnsupportedBillingMode(WebsiteDeployError):
    """Environment is not on usage-based (postpaid) billing."""

    code = 'unsupported_billing_mode'

    def __init__(self, message: str, *, billing_mode: str, **kwargs: Any) -> None:
        self.billing_mode = billing_mode
        super().__init__(message, **kwargs)


class ProvisioningError(WebsiteDeployError):
    """Hosting could not be enabled for the environment."""

    code = 'provisioning_failed'


class ProvisioningTimeoutError(ProvisioningError):
    """Hosting never became ready within the configured poll budget."""

    code = 'provisioning_timeout'

    def __init__(self, message: str, *, attempts: int, **kwargs: Any) -> None:
        self.attempts = attempts
        super().__init__(message, **kwargs)


class ProvisioningCancelled(ProvisioningError):
    """The provisioning poll loop was cancelled by its caller."""

    code = 'provisioning_cancelled'


class BuildError(WebsiteDeployError):
    """Building the static site failed."""

    code = 'build_failed'


class BuildCommandError(BuildError):
    """User-supplied build command exited non-zero."""

    code = 'build_command_failed'

    def __init__(
        self,
        command: str,
        returncode: int,
        stdout: str = '',
        stderr: str = '',
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        output = (stderr or stdout).strip()
        detail = output[:200] if output else '(no output)'
        super().__init__(
            f'build command {command!r} failed (exit {returncode}): {detail}',
            operation='build_command',
        )


class BuildOutputMissingError(BuildError):
    """The configured output directory does not exist after the build."""

    code = 'build_output_missing'


class DeploymentError(WebsiteDeployError):
    """At least one artifact failed to transfer."""

    code = 'deployment_failed'

    def __init__(
        self,
        message: str,
        *,
        artifact: Artifact | None = None,
        **kwargs: Any,
    ) -> None:
        self.artifact = artifact
        super().__init__(message, **kwargs)


class InvalidPhaseTransition(WebsiteDeployError, RuntimeError):
    """A lifecycle entry point was called out of order."""

    code = 'invalid_phase_transition'

    def __init__(self, from_phase: str, to_phase: str) -> None:
        self.from_phase = from_phase
        self.to_phase = to_phase
        super().__init__(
            f'invalid phase transition: {from_phase!r} -> {to_phase!r}',
            operation='phase_transition',
        )
