"""Build command and dependency install subprocess tests."""

from __future__ import annotations

import sys

import pytest

from website_deploy.build import commands
from website_deploy.build.commands import install_dependencies, run_build_command
from website_deploy.errors import BuildCommandError, BuildError

pytestmark = pytest.mark.skipif(sys.platform == 'win32', reason='POSIX shell required')


class TestRunBuildCommand:
    @pytest.mark.asyncio
    async def test_success_returns_stdout(self, tmp_path):
        out = await run_build_command('echo built', tmp_path)
        assert out.strip() == 'built'

    @pytest.mark.asyncio
    async def test_runs_in_project_directory(self, tmp_path):
        await run_build_command('mkdir -p dist && echo ok > dist/index.html', tmp_path)
        assert (tmp_path / 'dist' / 'index.html').read_text().strip() == 'ok'

    @pytest.mark.asyncio
    async def test_non_zero_exit_raises_with_output(self, tmp_path):
        with pytest.raises(BuildCommandError) as exc_info:
            await run_build_command('echo partial; echo broken >&2; exit 3', tmp_path)

        err = exc_info.value
        assert err.returncode == 3
        assert err.stdout.strip() == 'partial'
        assert err.stderr.strip() == 'broken'
        assert 'exit 3' in str(err)
        assert isinstance(err, BuildError)


class TestInstallDependencies:
    @pytest.mark.asyncio
    async def test_skipped_without_manifest(self, tmp_path, monkeypatch):
        async def _fail(command, cwd):
            raise AssertionError('should not run')

        monkeypatch.setattr(commands, '_run_shell', _fail)

        outcome = await install_dependencies(tmp_path)

        assert outcome.ok
        assert outcome.detail == 'no package manifest'

    @pytest.mark.asyncio
    async def test_runs_install_when_manifest_present(self, tmp_path, monkeypatch):
        (tmp_path / 'package.json').write_text('{}')
        seen = []

        async def _fake(command, cwd):
            seen.append((command, cwd))
            return 0, 'added 0 packages', ''

        monkeypatch.setattr(commands, '_run_shell', _fake)

        outcome = await install_dependencies(tmp_path)

        assert outcome.ok
        assert seen == [('npm install', tmp_path)]

    @pytest.mark.asyncio
    async def test_install_failure_reported_not_raised(self, tmp_path, monkeypatch):
        (tmp_path / 'package.json').write_text('{}')

        async def _fake(command, cwd):
            return 1, '', 'npm ERR! network'

        monkeypatch.setattr(commands, '_run_shell', _fake)

        outcome = await install_dependencies(tmp_path)

        assert outcome.ok is False
        assert 'npm ERR!' in outcome.detail

    @pytest.mark.asyncio
    async def test_missing_npm_reported_not_raised(self, tmp_path, monkeypatch):
        (tmp_path / 'package.json').write_text('{}')

        async def _fake(command, cwd):
            raise FileNotFoundError('npm')

        monkeypatch.setattr(commands, '_run_shell', _fake)

        outcome = await install_dependencies(tmp_path)

        assert outcome.ok is False
