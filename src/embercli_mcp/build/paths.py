"""Filesystem locations for an Ember app.

Every location is computed on first access and cached on the ``PathSet``
instance for its lifetime. Working directories are created when first
resolved; the signal files inside ``tmp`` are not, so status reads leave
the app tree untouched.
"""

from __future__ import annotations

import os
from functools import cached_property
from pathlib import Path
from typing import Any, Final

from ..config import Configuration
from .state import DependencyError

PATH_NAMES: Final[tuple[str, ...]] = (
    "root",
    "tmp",
    "log",
    "dist",
    "assets",
    "applications",
    "gemfile",
    "tests",
    "node_modules",
    "bower_components",
    "package_json_file",
    "addon_package_json_file",
    "ember_cli_package_json_file",
    "ember",
    "lockfile",
    "build_error_file",
    "tee",
    "bower",
    "npm",
    "bundler",
)


def is_executable(path: Path | None) -> bool:
    """Whether ``path`` is an existing file with the execute bit set."""
    return path is not None and path.is_file() and os.access(path, os.X_OK)


class PathSet:
    """Resolved locations for one app.

    Args:
        app_name: Name of the Ember app
        app_options: Per-app overrides (``path``, ``*_path`` executables)
        configuration: Global defaults for executables
        environment: Host environment name, used in the log file name
        host_root: Root of the host application
        ember_cli_root: Shared build output root (default ``host_root/tmp/ember-cli``)
    """

    def __init__(
        self,
        app_name: str,
        app_options: dict[str, Any],
        configuration: Configuration,
        environment: str,
        host_root: str | Path,
        ember_cli_root: str | Path | None = None,
    ):
        self._app_name = app_name
        self._app_options = dict(app_options)
        self._configuration = configuration
        self._environment = environment
        self._host_root = Path(host_root)
        self._ember_cli_root = (
            Path(ember_cli_root)
            if ember_cli_root is not None
            else self._host_root / "tmp" / "ember-cli"
        )

    @property
    def app_name(self) -> str:
        return self._app_name

    @property
    def host_root(self) -> Path:
        return self._host_root

    @property
    def ember_cli_root(self) -> Path:
        return self._ember_cli_root

    def get(self, name: str) -> Path | None:
        """Look up a location by name.

        Raises:
            KeyError: If ``name`` is not one of ``PATH_NAMES``
        """
        if name not in PATH_NAMES:
            raise KeyError(f"Unknown path {name!r}")
        return getattr(self, name)

    def make_working_directories(self) -> None:
        """Create the directories builds write into."""
        for name in ("tmp", "dist", "assets", "applications"):
            getattr(self, name)

    def to_dict(self) -> dict[str, str | None]:
        """Resolved locations that do not require validation or side effects."""
        names = ("root", "lockfile", "build_error_file", "log", "gemfile", "package_json_file")
        return {name: str(getattr(self, name)) for name in names}

    # Directories

    @cached_property
    def root(self) -> Path:
        path = Path(self._app_options.get("path") or self._host_root / self._app_name)
        if path.is_absolute():
            return path
        return self._host_root / path

    @cached_property
    def tmp(self) -> Path:
        return _mkpath(self.root / "tmp")

    @cached_property
    def log(self) -> Path:
        return self._host_root / "log" / f"ember-{self._app_name}.{self._environment}.log"

    @cached_property
    def dist(self) -> Path:
        return _mkpath(self._ember_cli_root / "apps" / self._app_name)

    @cached_property
    def assets(self) -> Path:
        return _mkpath(self._ember_cli_root / "assets")

    @cached_property
    def applications(self) -> Path:
        return _mkpath(self._host_root / "public" / "_apps")

    @cached_property
    def tests(self) -> Path:
        return self.dist / "tests"

    @cached_property
    def node_modules(self) -> Path:
        return self.root / "node_modules"

    @cached_property
    def bower_components(self) -> Path:
        return self.root / "bower_components"

    # Files

    @cached_property
    def gemfile(self) -> Path:
        return self.root / "Gemfile"

    @cached_property
    def package_json_file(self) -> Path:
        return self.root / "package.json"

    @cached_property
    def addon_package_json_file(self) -> Path:
        return self.node_modules / "ember-cli-rails-addon" / "package.json"

    @cached_property
    def ember_cli_package_json_file(self) -> Path:
        return self.node_modules / "ember-cli" / "package.json"

    @cached_property
    def lockfile(self) -> Path:
        return self.root / "tmp" / "build.lock"

    @cached_property
    def build_error_file(self) -> Path:
        return self.root / "tmp" / "error.txt"

    # Executables

    @cached_property
    def ember(self) -> Path:
        path = self.node_modules / ".bin" / "ember"
        if not is_executable(path):
            raise DependencyError(
                f"No local ember executable found. You should run `npm install`\n"
                f"inside the {self._app_name} app located at {self.root}"
            )
        return path

    @cached_property
    def tee(self) -> Path | None:
        return self._fetch_path_or_default("tee_path")

    @cached_property
    def bower(self) -> Path | None:
        return self._fetch_path_or_default("bower_path")

    @cached_property
    def npm(self) -> Path | None:
        return self._fetch_path_or_default("npm_path")

    @cached_property
    def bundler(self) -> Path | None:
        return self._fetch_path_or_default("bundler_path")

    def _fetch_path_or_default(self, key: str) -> Path | None:
        path = self._app_options.get(key) or getattr(self._configuration, key)
        return Path(path) if path else None


def _mkpath(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path
