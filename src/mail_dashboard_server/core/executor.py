"""Bounded execution of privileged external commands.

Every probe in the dashboard (log decompression, queue listing, sessions,
system facts) goes through :func:`execute`. The child runs in its own session
so a timeout can signal the whole pipeline it spawned (``zgrep`` is itself a
``gzip | grep`` script). Its stdout and stderr are drained together through a
selector while the caller polls liveness, so a chatty child can never block on
a full pipe.
"""

from __future__ import annotations

import logging
import os
import selectors
import shutil
import signal
import subprocess
import time
from collections.abc import Sequence
from dataclasses import dataclass
from functools import partial
from typing import Protocol

from .config import BIN_SUDO, DashboardConfig

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1
TERMINATE_GRACE = 0.5
DRAIN_GRACE = 0.25
TIMEOUT_EXIT_CODE = 124
_READ_CHUNK = 65536


@dataclass(frozen=True, slots=True)
class CommandResult:
    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


FAILED = CommandResult(exit_code=1, stdout="", stderr="")


class CommandRunner(Protocol):
    """Callable that runs argv with a wall-clock bound."""

    def __call__(self, argv: Sequence[str], timeout: float) -> CommandResult:
        ...


def _signal_group(pgid: int, sig: signal.Signals) -> None:
    try:
        os.killpg(pgid, sig)
    except ProcessLookupError:
        pass
    except PermissionError:
        # Escalated members of the group are out of reach; sudo relays for them.
        logger.debug("Could not send %s to every process in group %s", sig.name, pgid)


def _terminate(proc: subprocess.Popen[bytes]) -> None:
    """SIGTERM the child's process group, then SIGKILL whatever is left of it."""
    _signal_group(proc.pid, signal.SIGTERM)
    try:
        proc.wait(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        pass
    _signal_group(proc.pid, signal.SIGKILL)
    proc.wait()


def _pump(sel: selectors.BaseSelector, timeout: float) -> None:
    """Read whatever is ready; unregister pipes that reached EOF."""
    for key, _ in sel.select(timeout):
        chunk = os.read(key.fd, _READ_CHUNK)
        if chunk:
            key.data.append(chunk)
        else:
            sel.unregister(key.fileobj)


def execute(
    argv: Sequence[str],
    timeout: float = 15,
    *,
    use_sudo: bool = True,
    poll_interval: float = POLL_INTERVAL,
) -> CommandResult:
    """Run argv (escalated through ``sudo -n`` by default) and capture its output.

    Returns exit code 1 with no output when escalation is unavailable or the
    program cannot be started. On timeout the child's process group is killed
    and whatever it wrote so far is returned with ``timed_out=True``. Both
    pipes are closed and the child reaped before returning.
    """
    cmd = list(argv)
    if not cmd:
        raise ValueError("argv must not be empty")

    if use_sudo:
        sudo = shutil.which(BIN_SUDO)
        if sudo is None:
            logger.debug("sudo is not installed; not running %s", cmd[0])
            return FAILED
        cmd = [sudo, "-n", *cmd]

    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as exc:
        logger.debug("Could not start %s: %s", cmd[0], exc)
        return FAILED

    out_chunks: list[bytes] = []
    err_chunks: list[bytes] = []
    sel = selectors.DefaultSelector()
    sel.register(proc.stdout, selectors.EVENT_READ, out_chunks)
    sel.register(proc.stderr, selectors.EVENT_READ, err_chunks)

    timed_out = False
    deadline = time.monotonic() + timeout
    try:
        # Done once both pipes hit EOF and the child exited; a grandchild
        # still holding a pipe keeps the command running until the deadline.
        while sel.get_map() or proc.poll() is None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                timed_out = True
                logger.warning("Command timed out after %ss: %s", timeout, " ".join(argv))
                break
            _pump(sel, min(poll_interval, remaining))
    finally:
        if timed_out or proc.poll() is None:
            _terminate(proc)
        drain_until = time.monotonic() + DRAIN_GRACE
        while sel.get_map() and time.monotonic() < drain_until:
            _pump(sel, drain_until - time.monotonic())
        sel.close()
        proc.stdout.close()
        proc.stderr.close()
        proc.wait()

    exit_code = proc.returncode
    if timed_out and exit_code in (None, 0):
        exit_code = TIMEOUT_EXIT_CODE

    return CommandResult(
        exit_code=exit_code,
        stdout=b"".join(out_chunks).decode("utf-8", errors="replace"),
        stderr=b"".join(err_chunks).decode("utf-8", errors="replace"),
        timed_out=timed_out,
    )


def make_runner(cfg: DashboardConfig) -> CommandRunner:
    """Bind the escalation policy from config into a CommandRunner."""
    return partial(execute, use_sudo=cfg.use_sudo)
