"""Ember app build coordinator.

Drives ``ember build`` for one app, one-shot or in watch mode, and tracks
build completion through two files shared with the build tool:

- ``tmp/build.lock``: exists while a build is in progress. Created here
  before a watch build starts; the build tool removes it when a build pass
  finishes and recreates it for the next pass.
- ``tmp/error.txt``: the build tool's stderr. Non-empty means the last
  build failed.

Several host processes (server workers) may watch the same files, so these
files are the source of truth rather than anything held in memory.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shlex
import shutil
import time
from pathlib import Path
from typing import Any

from ..config import Configuration
from .dependencies import DependencyChecker
from .paths import PathSet
from .runner import BuildProcess, ProcessRunner
from .state import AppState, BuildError, DependencyError, InvalidTransitionError

logger = logging.getLogger(__name__)

POLL_INTERVAL: float = 0.1

# Extra seconds suggested when the first build outlives the timeout
TIMEOUT_SUGGESTION_STEP: float = 5.0

PRODUCTION = "production"


class EmberApp:
    """Build coordinator for one Ember app.

    Usage:
        app = EmberApp("storefront", host_root="/srv/shop", environment="production")
        app.compile()

    Args:
        name: App name; also the default root directory under ``host_root``
        host_root: Root of the host application
        environment: Host environment name ("production", "development", ...)
        configuration: Global defaults; per-app options are taken from it
        options: Per-app overrides, merged over ``configuration.apps[name]``
        precompile: Host asset pipeline's precompile list; prepare() registers
            this app's output pattern in it
        ember_cli_root: Shared build output root
    """

    def __init__(
        self,
        name: str,
        host_root: str | Path,
        environment: str = "development",
        configuration: Configuration | None = None,
        options: dict[str, Any] | None = None,
        precompile: list[re.Pattern[str]] | None = None,
        ember_cli_root: str | Path | None = None,
    ):
        self.name = str(name)
        self.configuration = configuration or Configuration()
        self.options = {**self.configuration.app_options(self.name), **(options or {})}
        self.environment = environment
        self.precompile = precompile if precompile is not None else []
        self.paths = PathSet(
            app_name=self.name,
            app_options=self.options,
            configuration=self.configuration,
            environment=environment,
            host_root=host_root,
            ember_cli_root=ember_cli_root,
        )
        self._state = AppState.NOT_PREPARED
        self._process: BuildProcess | None = None
        self._stopped_state = AppState.PREPARED
        self._package_json: dict[str, Any] | None = None

    def __repr__(self) -> str:
        return f"EmberApp({self.name!r}, state={self._state.value})"

    @property
    def state(self) -> AppState:
        """Current lifecycle state."""
        return self._state

    @property
    def process(self) -> BuildProcess | None:
        """Handle of the running watch build, if any."""
        return self._process

    @property
    def is_running(self) -> bool:
        return self._state == AppState.RUNNING

    def _set_state(self, new_state: AppState) -> None:
        old_state = self._state
        self._state = new_state
        if old_state != new_state:
            logger.info(f"App {self.name}: {old_state.value} -> {new_state.value}")

    # Lifecycle

    def prepare(self) -> None:
        """Check dependencies and ready the output locations. Runs once."""
        if self._state != AppState.NOT_PREPARED:
            return

        DependencyChecker(self.paths).check()
        self.paths.make_working_directories()
        self.reset_build_error()
        self.symlink_to_assets_root()
        self.add_assets_to_precompile_list()
        self._set_state(AppState.PREPARED)

    def compile(self) -> bool:
        """Build the app once and block until the build tool exits.

        Returns:
            True; a second call returns True without building again

        Raises:
            DependencyError: If tooling is missing or incompatible
            BuildError: If the build tool reported errors
            InvalidTransitionError: If a watch build is running
        """
        if self._state == AppState.COMPILED:
            return True
        if self._state == AppState.RUNNING:
            raise InvalidTransitionError("compile", self._state)

        self.prepare()
        self._runner().run(self.command())

        try:
            self.check_for_build_error()
        except BuildError:
            self._set_state(AppState.FAILED)
            raise

        self.copy_index_html_file()
        self._set_state(AppState.COMPILED)
        return True

    def run(self) -> BuildProcess:
        """Start a watch build in the background.

        The caller owns shutdown: call ``stop()`` (``AppManager.stop_all()``
        does this for every app) before the host exits.

        Raises:
            InvalidTransitionError: If a watch build is already running
        """
        if self._state == AppState.RUNNING or self._process is not None:
            raise InvalidTransitionError("run", self._state)

        self.prepare()
        stopped_state = AppState.PREPARED
        if self._state == AppState.COMPILED:
            stopped_state = AppState.COMPILED
        self.paths.lockfile.touch()
        self._process = self._runner().spawn(self.command(watch=True))
        self._stopped_state = stopped_state
        self._set_state(AppState.RUNNING)
        self.copy_index_html_file()
        return self._process

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the current build finishes.

        A recorded build error raises at once, even before the timeout.
        When the timeout passes, a warning is logged and the caller carries
        on with a build that may still be in progress.

        Args:
            timeout: Seconds to wait (default: the app's build timeout)

        Returns:
            True if the build finished, False if the wait timed out

        Raises:
            BuildError: If the build tool reported errors
        """
        if timeout is None:
            timeout = self.build_timeout
        deadline = time.monotonic() + timeout

        while True:
            self.check_for_build_error()
            if not self.paths.lockfile.exists():
                return True
            if time.monotonic() >= deadline:
                self._warn_timeout(timeout)
                return False
            time.sleep(POLL_INTERVAL)

    def stop(self) -> bool:
        """Interrupt the watch build, if one is running.

        An app compiled before the watch build started stays compiled.

        Returns:
            True if a process was interrupted
        """
        if self._process is None:
            return False

        self._process.interrupt()
        self._process = None
        self._set_state(self._stopped_state)
        return True

    def install_dependencies(self) -> None:
        """Install Ruby (if a Gemfile exists), npm and bower dependencies."""
        paths = self.paths
        runner = self._runner()

        if paths.gemfile.exists():
            runner.run(f"{_quote(paths.bundler)} install")

        npm = _quote(paths.npm)
        runner.run(f"{npm} prune && {npm} install")

        bower = _quote(paths.bower)
        runner.run(f"{bower} prune && {bower} install")

    def run_tests(self) -> None:
        """Run ``ember test`` to completion."""
        self.prepare()
        self._runner().run(f"{_quote(self.paths.ember)} test")

    # Build errors

    @property
    def build_error(self) -> bool:
        """Whether the error file records a failed build."""
        try:
            return self.paths.build_error_file.stat().st_size > 0
        except FileNotFoundError:
            return False

    def check_for_build_error(self) -> None:
        """Raise ``BuildError`` if the error file records a failed build."""
        if self.build_error:
            self._raise_build_error()

    def reset_build_error(self) -> None:
        """Delete a stale error file left by a previous run."""
        if self.build_error:
            logger.info(f"Clearing previous build error for {self.name}")
            self.paths.build_error_file.unlink(missing_ok=True)

    def _raise_build_error(self) -> None:
        with open(self.paths.build_error_file, encoding="utf-8", errors="replace") as f:
            trace = f.readlines()
        raise BuildError(f"EmberCLI app {self.name!r} has failed to build", trace=trace)

    def _warn_timeout(self, timeout: float) -> None:
        suggested_timeout = timeout + TIMEOUT_SUGGESTION_STEP
        logger.warning(
            f"Ember app {self.name!r} takes more than {timeout:g} seconds to compile. "
            f"To prevent race conditions consider raising the build timeout, "
            f"e.g. EMBER_CLI_BUILD_TIMEOUT={suggested_timeout:g}, or per app: "
            f"build_timeout={suggested_timeout:g}"
        )

    # Assets

    @property
    def assets_path(self) -> Path:
        return self.paths.assets / self.name

    @property
    def index_file(self) -> Path:
        """HTML entry page served for this app."""
        if self.environment == PRODUCTION:
            return self.paths.applications / f"{self.name}.html"
        return self.paths.dist / "index.html"

    def symlink_to_assets_root(self) -> None:
        """Link ``assets/<name>`` to the build output's assets directory."""
        try:
            self.assets_path.symlink_to(self.paths.dist / "assets")
        except FileExistsError:
            # Another worker created it first
            pass

    def add_assets_to_precompile_list(self) -> None:
        pattern = re.compile(rf"\A{re.escape(self.name)}/")
        if pattern not in self.precompile:
            self.precompile.append(pattern)

    def copy_index_html_file(self) -> None:
        """Copy the generated index.html to the served location (production only)."""
        if self.environment == PRODUCTION:
            shutil.copyfile(self.assets_path / "index.html", self.index_file)

    @property
    def ember_app_name(self) -> str:
        """Module prefix of the app's compiled assets."""
        return self.options.get("name") or self.package_json["name"]

    @property
    def vendor_assets(self) -> str:
        return f"{self.name}/vendor"

    @property
    def application_assets(self) -> str:
        return f"{self.name}/{self.ember_app_name}"

    def exposed_assets(self) -> list[str]:
        """Logical asset paths the host should serve for this app."""
        return [self.vendor_assets, self.application_assets]

    @property
    def package_json(self) -> dict[str, Any]:
        if self._package_json is None:
            with open(self.paths.package_json_file, encoding="utf-8") as f:
                self._package_json = json.load(f)
        return self._package_json

    # Command and environment

    @property
    def build_environment(self) -> str:
        """Ember build environment derived from the host environment."""
        return PRODUCTION if self.environment == PRODUCTION else "development"

    @property
    def build_timeout(self) -> float:
        return float(self.options.get("build_timeout", self.configuration.build_timeout))

    @property
    def watcher(self) -> str | None:
        return self.options.get("watcher", self.configuration.watcher)

    @property
    def excluded_ember_deps(self) -> str:
        deps = self.options.get("exclude_ember_deps") or []
        if isinstance(deps, str):
            deps = [deps]
        return ",".join(deps)

    def command(self, watch: bool = False) -> str:
        """Shell command line for ``ember build``."""
        parts = [_quote(self.paths.ember), "build"]

        if watch:
            parts.append("--watch")
            if self.watcher:
                parts += ["--watcher", shlex.quote(self.watcher)]

        parts += [
            "--environment",
            self.build_environment,
            "--output-path",
            _quote(self.paths.dist),
            "2>",
            _quote(self.paths.build_error_file),
        ]

        tee = self.paths.tee
        if tee:
            parts += ["|", _quote(tee), "-a", _quote(self.paths.log)]

        return " ".join(parts)

    def env(self) -> dict[str, str]:
        """Environment for build tool processes."""
        env = dict(os.environ)
        env["EMBER_ENV"] = self.build_environment
        env["DISABLE_FINGERPRINTING"] = "true"
        env["EXCLUDE_EMBER_ASSETS"] = self.excluded_ember_deps
        if self.paths.gemfile.exists():
            env["BUNDLE_GEMFILE"] = str(self.paths.gemfile)
        return env

    @property
    def silent(self) -> bool:
        """Discard build output unless verbose or in production."""
        return not (self.configuration.verbose or self.environment == PRODUCTION)

    def _runner(self) -> ProcessRunner:
        return ProcessRunner(cwd=self.paths.root, env=self.env(), silent=self.silent)

    def to_dict(self) -> dict[str, Any]:
        """Status of the app for JSON serialization."""
        lockfile = self.paths.lockfile
        result: dict[str, Any] = {
            "name": self.name,
            "state": self._state.value,
            "environment": self.environment,
            "root": str(self.paths.root),
            "building": lockfile.exists(),
            "buildError": self.build_error,
        }
        if self._process is not None:
            result["pid"] = self._process.pid
        return result


def _quote(path: Path | str | None) -> str:
    if path is None:
        raise DependencyError(
            "Executable path is not configured; set it per app or with EMBER_CLI_<TOOL>_PATH"
        )
    return shlex.quote(str(path))
