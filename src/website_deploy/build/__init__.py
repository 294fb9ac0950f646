"""Static-site build boundary: toolchain subprocesses and artifact staging."""

from .builder import DEFAULT_EXCLUDE, DEFAULT_INCLUDE, StaticBuilder, join_cloud_path
from .commands import install_dependencies, run_build_command

__all__ = [
    'DEFAULT_EXCLUDE',
    'DEFAULT_INCLUDE',
    'StaticBuilder',
    'install_dependencies',
    'join_cloud_path',
    'run_build_command',
]
