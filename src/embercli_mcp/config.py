"""Coordinator configuration.

Global defaults plus per-app option overrides. Values come from environment
variables (see ``Configuration.from_env``) and the command line, and are read
once at startup.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_BUILD_TIMEOUT: float = 5.0

# Per-app option keys understood by the coordinator
APP_OPTION_KEYS: frozenset[str] = frozenset(
    {
        "path",
        "name",
        "build_timeout",
        "watcher",
        "exclude_ember_deps",
        "tee_path",
        "bower_path",
        "npm_path",
        "bundler_path",
    }
)

TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(value: str | None) -> bool | None:
    if value is None or value == "":
        return None
    return value.strip().lower() in TRUTHY


@dataclass
class Configuration:
    """Global build configuration shared by all apps."""

    build_timeout: float = DEFAULT_BUILD_TIMEOUT
    """Seconds ``wait()`` blocks for the first watch build."""

    watcher: str | None = None
    """Watcher backend passed to ``ember build --watcher``."""

    verbose: bool | None = None
    """Force build output on (True) or off (False); None follows the environment."""

    tee_path: str | None = field(default_factory=lambda: shutil.which("tee"))
    bower_path: str | None = field(default_factory=lambda: shutil.which("bower"))
    npm_path: str | None = field(default_factory=lambda: shutil.which("npm"))
    bundler_path: str | None = field(default_factory=lambda: shutil.which("bundle"))

    apps: dict[str, dict[str, Any]] = field(default_factory=dict)
    """Per-app option overrides keyed by app name."""

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Configuration:
        """Build configuration from ``EMBER_CLI_*`` environment variables."""
        env = os.environ if environ is None else environ
        config = cls()

        timeout = env.get("EMBER_CLI_BUILD_TIMEOUT")
        if timeout:
            try:
                config.build_timeout = float(timeout)
            except ValueError:
                logger.warning(
                    f"EMBER_CLI_BUILD_TIMEOUT={timeout!r} is not a number, "
                    f"using {config.build_timeout}s"
                )

        config.watcher = env.get("EMBER_CLI_WATCHER") or None
        config.verbose = _env_flag(env.get("EMBER_CLI_VERBOSE"))

        for key in ("tee_path", "bower_path", "npm_path", "bundler_path"):
            value = env.get(f"EMBER_CLI_{key.upper()}")
            if value:
                setattr(config, key, value)

        return config

    def app(self, name: str, **options: Any) -> dict[str, Any]:
        """Register (or update) per-app options and return them."""
        unknown = set(options) - APP_OPTION_KEYS
        if unknown:
            raise ValueError(f"Unknown app options for {name!r}: {sorted(unknown)}")
        app_options = self.apps.setdefault(name, {})
        app_options.update(options)
        return app_options

    def app_options(self, name: str) -> dict[str, Any]:
        """Options for an app (a copy, empty if none were registered)."""
        return dict(self.apps.get(name, {}))
