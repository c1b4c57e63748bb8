"""Shell command execution for build tool invocations.

Commands are shell strings because they carry their own redirections
(``2> error.txt | tee -a build.log``). Stderr of the shell is merged into
stdout; stdout is discarded when the runner is silent.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


class BuildProcess:
    """Handle to a detached build process.

    The child is reaped by a daemon thread so it never lingers as a zombie.
    """

    def __init__(self, process: subprocess.Popen):
        self._process = process
        self._reaper = threading.Thread(
            target=process.wait, name=f"reap-{process.pid}", daemon=True
        )
        self._reaper.start()

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        """Exit code, or None while the process is still running."""
        return self._process.poll()

    def interrupt(self) -> None:
        """Send SIGINT to the process group (the shell and the build tool)."""
        logger.info(f"Interrupting build process {self.pid}")
        try:
            os.killpg(self.pid, signal.SIGINT)
        except ProcessLookupError:
            logger.debug(f"Build process {self.pid} already exited")


class ProcessRunner:
    """Runs shell commands in a fixed directory and environment.

    Args:
        cwd: Working directory for every command
        env: Complete environment for the child
        silent: Discard the child's output instead of passing it through
    """

    def __init__(self, cwd: str | Path, env: dict[str, str], silent: bool = True):
        self.cwd = Path(cwd)
        self.env = env
        self.silent = silent

    @property
    def _stdout(self) -> int | None:
        return subprocess.DEVNULL if self.silent else None

    def run(self, command: str) -> None:
        """Run ``command`` to completion.

        A command that cannot start or exits nonzero leaves nothing to
        continue from, so the host process exits with status 1.
        """
        logger.info(f"Running: {command}")
        try:
            result = subprocess.run(
                command,
                shell=True,
                cwd=self.cwd,
                env=self.env,
                stdout=self._stdout,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            logger.error(f"Failed to start `{command}`: {e}")
            sys.exit(1)

        if result.returncode != 0:
            logger.error(f"`{command}` exited with code {result.returncode}")
            sys.exit(1)

    def spawn(self, command: str) -> BuildProcess:
        """Start ``command`` in the background and return its handle."""
        logger.info(f"Spawning: {command}")
        process = subprocess.Popen(
            command,
            shell=True,
            cwd=self.cwd,
            env=self.env,
            stdout=self._stdout,
            stderr=subprocess.STDOUT,
            start_new_session=True,
        )
        logger.info(f"Build process started with PID: {process.pid} in directory {self.cwd}")
        return BuildProcess(process)
