"""Pre-build dependency checks.

Checks run in a fixed order and stop at the first failure:
node_modules → bower_components → bower executable → ember-cli → addon
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Final

from ..utils.version import read_manifest_version, satisfies
from .paths import PathSet, is_executable
from .state import DependencyError

logger = logging.getLogger(__name__)

EMBER_CLI_VERSIONS: Final[tuple[str, ...]] = ("~> 0.1.5", "~> 0.2.0", "~> 1.13")
ADDON_VERSIONS: Final[tuple[str, ...]] = ("~> 0.0.13",)


class DependencyChecker:
    """Validates that an app's tooling is installed and compatible."""

    def __init__(self, paths: PathSet):
        self._paths = paths

    def check(self) -> None:
        """Run all checks.

        Raises:
            DependencyError: On the first missing or incompatible dependency
        """
        self._assert_directory_exists(self._paths.node_modules)
        self._assert_directory_exists(self._paths.bower_components)
        self._assert_bower_executable()
        self._assert_dependency_version(
            self._paths.ember_cli_package_json_file, "ember-cli", EMBER_CLI_VERSIONS
        )
        self._assert_dependency_version(
            self._paths.addon_package_json_file, "ember-cli-rails-addon", ADDON_VERSIONS
        )
        logger.debug(f"Dependencies satisfied for {self._paths.app_name}")

    def _assert_directory_exists(self, directory: Path) -> None:
        if not directory.is_dir():
            raise DependencyError(
                f"EmberCLI app dependencies are not installed ({directory} is missing).\n"
                f"From your application root please run:\n\n"
                f"    $ embercli-mcp --app {self._paths.app_name} --install\n"
            )

    def _assert_bower_executable(self) -> None:
        if not is_executable(self._paths.bower):
            raise DependencyError(
                "Bower is required by EmberCLI\n\n"
                "Install it with:\n\n"
                "    $ npm install -g bower\n"
            )

    def _assert_dependency_version(
        self, path: Path, name: str, versions: tuple[str, ...]
    ) -> None:
        acceptable = ", ".join(versions)

        if not path.is_file():
            raise DependencyError(
                f"EmberCLI requires `{name}` version `{acceptable}`\n\n"
                f"Please add it to your `package.json` and run\n\n"
                f"    $ npm install\n"
            )

        try:
            current_version = read_manifest_version(path)
        except (json.JSONDecodeError, OSError) as e:
            raise DependencyError(
                f"Could not read the `{name}` manifest at {path}: {e}\n\n"
                f"Please reinstall it with\n\n"
                f"    $ npm install\n"
            ) from e

        if not satisfies(current_version, versions):
            raise DependencyError(
                f"EmberCLI requires `{name}` version `{acceptable}`\n\n"
                f"You have `{current_version}` installed.\n\n"
                f"Please update your `package.json` and run\n\n"
                f"    $ npm install\n"
            )
