"""Build coordination for Ember CLI apps.

Provides:
- Path resolution per app (``PathSet``)
- Dependency and version checks before any build
- One-shot and watch builds of ``ember build``
- Build completion and failure tracking through lock/error files
"""

from .app import EmberApp
from .dependencies import ADDON_VERSIONS, EMBER_CLI_VERSIONS, DependencyChecker
from .manager import AppManager
from .paths import PATH_NAMES, PathSet
from .runner import BuildProcess, ProcessRunner
from .state import (
    AppState,
    BuildError,
    DependencyError,
    EmberCliError,
    InvalidTransitionError,
)

__all__ = [
    "EmberApp",
    "AppManager",
    "AppState",
    "PathSet",
    "PATH_NAMES",
    "DependencyChecker",
    "EMBER_CLI_VERSIONS",
    "ADDON_VERSIONS",
    "ProcessRunner",
    "BuildProcess",
    "EmberCliError",
    "DependencyError",
    "BuildError",
    "InvalidTransitionError",
]
