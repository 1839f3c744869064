"""Guarded stop/start of system services around a cleanup.

Some caches can only be cleared while their owning service is stopped
(e.g. the Windows Update download cache and ``wuauserv``). The guard stops
the service on entry and restarts it on every exit path, each call under an
enforced timeout.

State after the guard exits:

- stop succeeded: the service is restarted.
- stop timed out: the service state is unknown, so a restart is attempted.
- stop failed outright: the service was never stopped and is left alone.
- restart timed out: the service is left as is and a warning is logged;
  the operator has to start it manually.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from tidydisk.errors import OperationTimeout
from tidydisk.shell import run_command

logger = logging.getLogger(__name__)

SERVICE_STOP = "service_stop"
SERVICE_START = "service_start"


@dataclass(frozen=True)
class ServiceSpec:
    """A service that must be stopped while a category is cleaned."""

    name: str
    stop_command: list[str]
    start_command: list[str]


@dataclass
class ServiceGuard:
    """Context manager that keeps a service stopped for the duration of a block."""

    spec: ServiceSpec
    timeout: float
    on_timeout: Callable[[str], None] | None = None
    stopped: bool = False
    timeouts: list[str] = field(default_factory=list)
    _stop_timed_out: bool = field(default=False, init=False, repr=False)

    def __enter__(self) -> "ServiceGuard":
        self._stop_timed_out = False
        try:
            result = run_command(
                self.spec.stop_command, timeout=self.timeout, operation=SERVICE_STOP
            )
        except OperationTimeout as e:
            self._stop_timed_out = True
            self._timed_out(SERVICE_STOP, e)
            return self
        except OSError as e:
            logger.warning("Could not stop service %s: %s", self.spec.name, e)
            return self

        if result.success:
            self.stopped = True
            logger.info("Stopped service %s", self.spec.name)
        else:
            logger.warning(
                "Stopping service %s failed: %s",
                self.spec.name,
                result.stderr.strip() or f"exit code {result.returncode}",
            )
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if not (self.stopped or self._stop_timed_out):
            return False
        try:
            result = run_command(
                self.spec.start_command, timeout=self.timeout, operation=SERVICE_START
            )
        except OperationTimeout as e:
            self._timed_out(SERVICE_START, e)
            logger.warning("Service %s may still be stopped; start it manually", self.spec.name)
            return False
        except OSError as e:
            logger.warning("Could not restart service %s: %s", self.spec.name, e)
            return False

        if result.success:
            self.stopped = False
            logger.info("Restarted service %s", self.spec.name)
        else:
            logger.warning(
                "Restarting service %s failed: %s",
                self.spec.name,
                result.stderr.strip() or f"exit code {result.returncode}",
            )
        return False

    def _timed_out(self, operation: str, error: OperationTimeout) -> None:
        logger.warning("%s (%s)", error, self.spec.name)
        self.timeouts.append(operation)
        if self.on_timeout:
            self.on_timeout(operation)
