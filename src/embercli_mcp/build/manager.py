"""App manager - owns the build coordinators of a host process.

Provides:
- One coordinator per app name
- The shared asset precompile list
- Shutdown of every watch build (``stop_all``)
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from ..config import Configuration
from .app import EmberApp
from .state import AppState

logger = logging.getLogger(__name__)


class AppManager:
    """Registry of Ember apps for one host process.

    Usage:
        manager = AppManager("/srv/shop", environment="production")
        manager.get_app("storefront").compile()
        ...
        manager.stop_all()  # from the host's shutdown sequence
    """

    def __init__(
        self,
        host_root: str | Path,
        environment: str = "development",
        configuration: Configuration | None = None,
    ) -> None:
        self.host_root = Path(host_root)
        self.environment = environment
        self.configuration = configuration or Configuration()
        self.precompile: list[re.Pattern[str]] = []
        self._apps: dict[str, EmberApp] = {}

    def configure_app(self, name: str, **options: Any) -> EmberApp:
        """Register per-app options and return the app.

        Options only take effect for apps not created yet; paths are
        resolved once per app.
        """
        if name in self._apps:
            logger.warning(f"App {name!r} already exists; options not applied")
            return self._apps[name]
        self.configuration.app(name, **options)
        return self.get_app(name)

    def get_app(self, name: str) -> EmberApp:
        """Get or create the coordinator for ``name``."""
        if name not in self._apps:
            self._apps[name] = EmberApp(
                name,
                host_root=self.host_root,
                environment=self.environment,
                configuration=self.configuration,
                precompile=self.precompile,
            )
        return self._apps[name]

    def find_app(self, name: str) -> EmberApp:
        """Get an existing app.

        Raises:
            KeyError: If no app with that name was configured
        """
        try:
            return self._apps[name]
        except KeyError:
            raise KeyError(
                f"Unknown app {name!r}; configured apps: {sorted(self._apps)}"
            ) from None

    @property
    def apps(self) -> list[EmberApp]:
        return list(self._apps.values())

    def is_precompiled(self, logical_path: str) -> bool:
        """Whether an asset path belongs to a prepared app."""
        return any(pattern.search(logical_path) for pattern in self.precompile)

    def stop_all(self) -> int:
        """Stop every running watch build.

        Returns:
            Number of processes interrupted
        """
        stopped = 0
        for app in self._apps.values():
            try:
                if app.stop():
                    stopped += 1
            except OSError:
                logger.exception(f"Failed to stop app {app.name}")
        if stopped:
            logger.info(f"Stopped {stopped} watch build(s)")
        return stopped

    def get_all_states(self) -> dict[str, AppState]:
        return {name: app.state for name, app in self._apps.items()}

    def to_dict(self) -> dict[str, Any]:
        """Manager status as dictionary."""
        return {
            "hostRoot": str(self.host_root),
            "environment": self.environment,
            "apps": {name: app.to_dict() for name, app in self._apps.items()},
        }
