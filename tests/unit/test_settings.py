"""Website input resolution and runtime settings tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from website_deploy.errors import ConfigError
from website_deploy.settings import (
    CONFIG_FILENAME,
    DEFAULT_IGNORE,
    DEFAULT_POLL_DELAY_SECONDS,
    DeploySettings,
    WebsiteInputs,
    resolve_inputs,
)


# ── resolve_inputs ───────────────────────────────────────────────────


class TestResolveInputs:
    def test_defaults_when_no_overrides(self):
        inputs = resolve_inputs()
        assert inputs == WebsiteInputs()
        assert inputs.output_path == 'dist'
        assert inputs.cloud_path == '/'
        assert inputs.build_command is None

    def test_default_ignore_covers_vcs_ci_deps_and_config(self):
        assert DEFAULT_IGNORE == {'.git', '.github', 'node_modules', CONFIG_FILENAME}

    def test_only_cloud_path_keeps_other_defaults(self):
        inputs = resolve_inputs({'cloudPath': '/app/'})
        assert inputs.cloud_path == '/app/'
        assert inputs.output_path == 'dist'
        assert inputs.ignore == DEFAULT_IGNORE

    def test_snake_case_keys_accepted(self):
        inputs = resolve_inputs({'output_path': 'build', 'build_command': 'make site'})
        assert inputs.output_path == 'build'
        assert inputs.build_command == 'make site'

    def test_every_field_overridden(self):
        inputs = resolve_inputs(
            {
                'outputPath': 'public',
                'cloudPath': '/docs/',
                'ignore': ['*.map'],
                'buildCommand': 'npm run build',
            }
        )
        assert inputs.output_path == 'public'
        assert inputs.cloud_path == '/docs/'
        assert inputs.build_command == 'npm run build'
        assert '*.map' in inputs.ignore

    def test_user_ignore_is_unioned_with_defaults(self):
        inputs = resolve_inputs({'ignore': ['*.map', 'drafts']})
        assert inputs.ignore == DEFAULT_IGNORE | {'*.map', 'drafts'}

    def test_none_values_keep_defaults(self):
        inputs = resolve_inputs({'outputPath': None, 'buildCommand': None})
        assert inputs.output_path == 'dist'
        assert inputs.build_command is None

    def test_blank_build_command_normalized_to_none(self):
        assert resolve_inputs({'buildCommand': '   '}).build_command is None

    def test_unknown_key_rejected(self):
        with pytest.raises(ConfigError, match='unknown website input'):
            resolve_inputs({'bucket': 'x'})

    def test_empty_output_path_rejected(self):
        with pytest.raises(ConfigError):
            resolve_inputs({'outputPath': ''})

    def test_ignore_string_rejected(self):
        with pytest.raises(ConfigError):
            resolve_inputs({'ignore': '.git'})

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            resolve_inputs({'cloudPath': 3})

    def test_inputs_are_immutable(self):
        inputs = resolve_inputs()
        with pytest.raises(AttributeError):
            inputs.output_path = 'other'  # type: ignore[misc]

    def test_as_dict_uses_camel_case(self):
        payload = resolve_inputs({'cloudPath': '/site/'}).as_dict()
        assert payload['cloudPath'] == '/site/'
        assert payload['outputPath'] == 'dist'
        assert payload['ignore'] == sorted(DEFAULT_IGNORE)


# ── DeploySettings ───────────────────────────────────────────────────


class TestDeploySettings:
    def test_defaults(self):
        settings = DeploySettings(env_id='env-1')
        assert settings.poll_delay_seconds == DEFAULT_POLL_DELAY_SECONDS == 180.0
        assert settings.max_poll_attempts is None
        assert settings.strict_lookup is False
        assert settings.validate() == []

    def test_validate_reports_missing_env_id(self):
        assert 'env_id is required' in DeploySettings().validate()

    def test_validate_reports_bad_bounds(self):
        errors = DeploySettings(
            env_id='env-1',
            poll_delay_seconds=-1,
            max_poll_attempts=0,
            max_concurrency=0,
        ).validate()
        assert len(errors) == 3

    def test_from_env(self):
        settings = DeploySettings.from_env(
            {
                'WEBSITE_ENV_ID': 'env-9',
                'PROJECT_PATH': '/srv/site',
                'CLOUD_API_URL': 'https://cloud.test',
                'CLOUD_API_TOKEN': 'tok',
                'HOSTING_POLL_DELAY_SECONDS': '5',
                'HOSTING_MAX_POLL_ATTEMPTS': '4',
                'HOSTING_STRICT_LOOKUP': 'true',
                'DEPLOY_MAX_CONCURRENCY': '8',
            }
        )
        assert settings.env_id == 'env-9'
        assert settings.project_path == Path('/srv/site')
        assert settings.cloud_api_url == 'https://cloud.test'
        assert settings.cloud_api_token == 'tok'
        assert settings.poll_delay_seconds == 5.0
        assert settings.max_poll_attempts == 4
        assert settings.strict_lookup is True
        assert settings.max_concurrency == 8

    def test_from_env_empty_uses_defaults(self):
        settings = DeploySettings.from_env({})
        assert settings.env_id == ''
        assert settings.poll_delay_seconds == DEFAULT_POLL_DELAY_SECONDS
        assert settings.max_poll_attempts is None
        assert settings.max_concurrency is None

    def test_from_env_rejects_non_numeric(self):
        with pytest.raises(ConfigError, match='HOSTING_MAX_POLL_ATTEMPTS'):
            DeploySettings.from_env({'HOSTING_MAX_POLL_ATTEMPTS': 'lots'})
