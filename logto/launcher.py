"""Spawning the supervised command with its output redirected."""

import logging
import os
import subprocess
from dataclasses import dataclass

from logto.errors import SpawnError

logger = logging.getLogger(__name__)


def exit_status(returncode: int) -> int:
    """Map a Popen returncode to a shell-style exit status."""
    if returncode < 0:
        return 128 - returncode
    return returncode


@dataclass
class ChildProcess:
    process: subprocess.Popen
    read_fd: int | None = None

    @property
    def pid(self) -> int:
        return self.process.pid

    def reap(self, timeout: float | None = None) -> int | None:
        """Collect the child's exit status, or None if it is still running."""
        try:
            returncode = self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Child %d still running after %.1fs", self.pid, timeout)
            return None
        return exit_status(returncode)

    def kill(self) -> int:
        """Stop a child we can no longer relay for and collect it."""
        if self.process.poll() is None:
            logger.warning("Killing child %d", self.pid)
            self.process.kill()
        return exit_status(self.process.wait())

    def close(self):
        if self.read_fd is not None:
            os.close(self.read_fd)
            self.read_fd = None


def _start(command: tuple[str, ...], out_fd: int) -> subprocess.Popen:
    # stdout and stderr both land on out_fd; everything else is closed
    try:
        return subprocess.Popen(list(command), stdout=out_fd, stderr=out_fd, close_fds=True)
    except OSError as exc:
        raise SpawnError(f"exec of {command[0]!r} failed: {exc}") from exc


def spawn(command: tuple[str, ...], target: int | None = None) -> ChildProcess:
    """Start ``command``.

    Without ``target`` a pipe is created and the child's stdout/stderr are
    both duplicated onto its write end; the parent keeps only the read end.
    With ``target`` (an open, writable descriptor) the child writes there
    directly and no pipe is used.
    """
    if not command:
        raise SpawnError("no command to run")

    if target is not None:
        process = _start(command, target)
        logger.info("Started %s (pid %d) writing directly to fd %d",
                    command[0], process.pid, target)
        return ChildProcess(process)

    try:
        read_fd, write_fd = os.pipe()
    except OSError as exc:
        raise SpawnError(f"could not setup pipe(): {exc}") from exc

    try:
        process = _start(command, write_fd)
    except SpawnError:
        os.close(read_fd)
        raise
    finally:
        os.close(write_fd)

    logger.info("Started %s (pid %d), reading output from fd %d",
                command[0], process.pid, read_fd)
    return ChildProcess(process, read_fd)
