"""Website inputs and runtime settings.

``WebsiteInputs`` is the user-facing configuration (output directory,
remote base path, ignore set, build command), resolved once by merging
overrides onto defaults. ``DeploySettings`` carries runtime knobs for the
cloud client and the provisioning poll loop. Both are plain frozen
dataclasses so tests can inject config without touching os.environ.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigError

CONFIG_FILENAME = 'website.config.json'

DEFAULT_OUTPUT_PATH = 'dist'
DEFAULT_CLOUD_PATH = '/'
DEFAULT_IGNORE = frozenset({'.git', '.github', 'node_modules', CONFIG_FILENAME})

DEFAULT_POLL_DELAY_SECONDS = 180.0
DEFAULT_CLOUD_API_URL = 'https://api.cloud.example.com'

# camelCase keys come from JSON config files written for the hosting integration.
_INPUT_ALIASES = {
    'outputPath': 'output_path',
    'output_path': 'output_path',
    'cloudPath': 'cloud_path',
    'cloud_path': 'cloud_path',
    'ignore': 'ignore',
    'buildCommand': 'build_command',
    'build_command': 'build_command',
}


@dataclass(frozen=True, slots=True)
class WebsiteInputs:
    """Resolved website inputs: defaults with every explicit field overridden."""

    output_path: str = DEFAULT_OUTPUT_PATH
    cloud_path: str = DEFAULT_CLOUD_PATH
    ignore: frozenset[str] = DEFAULT_IGNORE
    build_command: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            'outputPath': self.output_path,
            'cloudPath': self.cloud_path,
            'ignore': sorted(self.ignore),
            'buildCommand': self.build_command,
        }


def resolve_inputs(overrides: Mapping[str, Any] | None = None) -> WebsiteInputs:
    """Merge user overrides onto the default website inputs.

    Unset fields keep their defaults. User ignore patterns are added to the
    built-in exclusions, never substituted for them.

    Raises:
        ConfigError: On unknown keys or values of the wrong type.
    """
    resolved: dict[str, Any] = {}
    for key, value in (overrides or {}).items():
        field_name = _INPUT_ALIASES.get(key)
        if field_name is None:
            raise ConfigError(f'unknown website input: {key!r}', operation='resolve_inputs')
        if value is None:
            continue
        resolved[field_name] = value

    for name in ('output_path', 'cloud_path'):
        if name in resolved:
            value = resolved[name]
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(
                    f'{name} must be a non-empty string',
                    operation='resolve_inputs',
                )

    if 'build_command' in resolved:
        command = resolved['build_command']
        if not isinstance(command, str):
            raise ConfigError('build_command must be a string', operation='resolve_inputs')
        resolved['build_command'] = command.strip() or None

    if 'ignore' in resolved:
        patterns = resolved['ignore']
        if isinstance(patterns, str) or not all(isinstance(p, str) for p in patterns):
            raise ConfigError('ignore must be a list of glob strings', operation='resolve_inputs')
        resolved['ignore'] = DEFAULT_IGNORE | frozenset(patterns)

    return WebsiteInputs(**resolved)


@dataclass(frozen=True, slots=True)
class DeploySettings:
    """Runtime configuration for one orchestration run."""

    env_id: str = ''
    """Target cloud environment identifier."""

    project_path: Path = Path('.')
    """Directory the build command runs in; output_path resolves against it."""

    cloud_api_url: str = DEFAULT_CLOUD_API_URL
    cloud_api_token: str = ''
    """Bearer token for the control-plane API. Never log this."""

    poll_delay_seconds: float = DEFAULT_POLL_DELAY_SECONDS
    """Fixed wait between hosting enable requests and the next lookup."""

    max_poll_attempts: int | None = None
    """Create-then-wait cycles before giving up. None retries forever."""

    strict_lookup: bool = False
    """Surface unexpected hosting lookup errors instead of treating them as absence."""

    max_concurrency: int | None = None
    """Upper bound on in-flight uploads. None dispatches all at once."""

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if not self.env_id:
            errors.append('env_id is required')
        if self.poll_delay_seconds < 0:
            errors.append('poll_delay_seconds must be >= 0')
        if self.max_poll_attempts is not None and self.max_poll_attempts < 1:
            errors.append('max_poll_attempts must be >= 1')
        if self.max_concurrency is not None and self.max_concurrency < 1:
            errors.append('max_concurrency must be >= 1')
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> DeploySettings:
        """Build settings from environment variables.

        Tests should construct DeploySettings directly.
        """
        if env is None:
            env = dict(os.environ)

        return cls(
            env_id=env.get('WEBSITE_ENV_ID', ''),
            project_path=Path(env.get('PROJECT_PATH', '.')),
            cloud_api_url=env.get('CLOUD_API_URL', DEFAULT_CLOUD_API_URL),
            cloud_api_token=env.get('CLOUD_API_TOKEN', ''),
            poll_delay_seconds=_float_env(
                env, 'HOSTING_POLL_DELAY_SECONDS', DEFAULT_POLL_DELAY_SECONDS,
            ),
            max_poll_attempts=_optional_int_env(env, 'HOSTING_MAX_POLL_ATTEMPTS'),
            strict_lookup=env.get('HOSTING_STRICT_LOOKUP', '').lower() in ('1', 'true', 'yes'),
            max_concurrency=_optional_int_env(env, 'DEPLOY_MAX_CONCURRENCY'),
        )


def _float_env(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key, '').strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f'{key} must be a number, got {raw!r}') from exc


def _optional_int_env(env: Mapping[str, str], key: str) -> int | None:
    raw = env.get(key, '').strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f'{key} must be an integer, got {raw!r}') from exc
