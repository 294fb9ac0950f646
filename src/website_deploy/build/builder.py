"""Package the static build output into deployable artifacts.

The builder copies every selected file from ``copy_root`` into a staging
directory and tags it with its remote destination::

    {copy_root}/assets/app.js  ->  {staging}/assets/app.js  ->  {base}assets/app.js

Staged copies keep the deploy stable if the build directory is rewritten
while uploads are in flight. ``clean()`` removes the staging directory.
"""

from __future__ import annotations

import fnmatch
import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import Iterable, Sequence

from ..errors import BuildOutputMissingError
from ..models import Artifact, StepOutcome
from ..settings import DEFAULT_IGNORE

logger = logging.getLogger(__name__)

DEFAULT_INCLUDE = ('**',)
DEFAULT_EXCLUDE = ('**/node_modules/**',)
STAGING_DIRNAME = '.website_deploy'


def join_cloud_path(base: str, relative: str) -> str:
    """Join a remote base path and a POSIX relative path with single slashes."""
    base = '/' + base.strip('/')
    relative = relative.lstrip('/')
    if base == '/':
        return f'/{relative}'
    return f'{base}/{relative}'


def _glob_match(relative: str, pattern: str) -> bool:
    # '**/' also matches zero directories.
    if fnmatch.fnmatchcase(relative, pattern):
        return True
    if pattern.startswith('**/'):
        return _glob_match(relative, pattern[3:])
    return False


def _is_ignored(relative: PurePosixPath, ignore: Iterable[str]) -> bool:
    for pattern in ignore:
        if any(fnmatch.fnmatchcase(part, pattern) for part in relative.parts):
            return True
        if fnmatch.fnmatchcase(relative.as_posix(), pattern):
            return True
    return False


class StaticBuilder:
    """Selects, stages, and maps build output files onto remote paths."""

    def __init__(
        self,
        *,
        project_path: Path,
        copy_root: Path,
        ignore: Iterable[str] = DEFAULT_IGNORE,
        staging_dir: Path | None = None,
    ) -> None:
        self.project_path = Path(project_path)
        self.copy_root = Path(copy_root)
        self.ignore = frozenset(ignore)
        if staging_dir is None:
            self._clean_root = self.project_path / STAGING_DIRNAME
            self.staging_dir = self._clean_root / 'build'
        else:
            self._clean_root = self.staging_dir = Path(staging_dir)

    def collect(
        self,
        include: Sequence[str] = DEFAULT_INCLUDE,
        exclude: Sequence[str] = DEFAULT_EXCLUDE,
    ) -> list[PurePosixPath]:
        """Return relative paths under copy_root selected by the globs, sorted."""
        if not self.copy_root.is_dir():
            raise BuildOutputMissingError(
                f'build output directory not found: {self.copy_root}',
                operation='build',
            )

        selected: list[PurePosixPath] = []
        for path in self.copy_root.rglob('*'):
            if not path.is_file():
                continue
            relative = PurePosixPath(path.relative_to(self.copy_root).as_posix())
            rel = relative.as_posix()
            if not any(_glob_match(rel, p) for p in include):
                continue
            if any(_glob_match(rel, p) for p in exclude):
                continue
            if relative.parts[0] == STAGING_DIRNAME or _is_ignored(relative, self.ignore):
                continue
            selected.append(relative)
        return sorted(selected)

    def build(
        self,
        include: Sequence[str] = DEFAULT_INCLUDE,
        exclude: Sequence[str] = DEFAULT_EXCLUDE,
        *,
        destination_base: str = '/',
    ) -> list[Artifact]:
        """Stage selected files and return one artifact per file."""
        files = self.collect(include, exclude)
        if self.staging_dir.exists():
            shutil.rmtree(self.staging_dir)
        self.staging_dir.mkdir(parents=True)

        artifacts: list[Artifact] = []
        for relative in files:
            staged = self.staging_dir.joinpath(*relative.parts)
            staged.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.copy_root.joinpath(*relative.parts), staged)
            artifacts.append(
                Artifact(
                    local_path=staged,
                    cloud_path=join_cloud_path(destination_base, relative.as_posix()),
                    ignore=self.ignore,
                )
            )

        logger.info(
            'Staged %d files from %s',
            len(artifacts),
            self.copy_root,
            extra={'cloud_path': destination_base},
        )
        return artifacts

    def clean(self) -> StepOutcome:
        """Remove staged build state. Best effort: never raises."""
        try:
            shutil.rmtree(self._clean_root)
        except FileNotFoundError:
            return StepOutcome(name='clean', ok=True, detail='nothing to clean')
        except OSError as exc:
            return StepOutcome(name='clean', ok=False, detail=str(exc))
        return StepOutcome(name='clean', ok=True)
