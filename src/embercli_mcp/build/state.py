"""App lifecycle states and error types.

State machine for an Ember app:
NOT_PREPARED → PREPARED → COMPILED | RUNNING | FAILED
                  ↑_____________________|  (stop, retry)

Stopping a watch build returns to COMPILED if the app was compiled before
the watch build started, otherwise to PREPARED.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class AppState(str, Enum):
    """Ember app lifecycle states."""

    NOT_PREPARED = "not_prepared"
    PREPARED = "prepared"
    COMPILED = "compiled"
    RUNNING = "running"
    FAILED = "failed"


class EmberCliError(Exception):
    """Base class for all coordinator errors."""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"error": str(self), "type": type(self).__name__}


class DependencyError(EmberCliError):
    """Required tooling or packages are missing or incompatible.

    The message always carries a remediation instruction.
    """


class InvalidTransitionError(EmberCliError):
    """Operation is not allowed in the app's current state."""

    def __init__(self, operation: str, state: AppState):
        super().__init__(f"Cannot {operation} while app is {state.value}")
        self.operation = operation
        self.state = state


class BuildError(EmberCliError):
    """Build failed; ``trace`` holds the error file contents line by line."""

    def __init__(self, message: str, trace: list[str] | None = None):
        super().__init__(message)
        self.trace = trace or []

    def __str__(self) -> str:
        message = super().__str__()
        if not self.trace:
            return message
        return message + "\n" + "".join(self.trace).rstrip()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.args[0] if self.args else "",
            "type": type(self).__name__,
            "trace": [line.rstrip("\n") for line in self.trace],
        }
