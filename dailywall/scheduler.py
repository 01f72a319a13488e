"""
Job scheduling

JobScheduler is the small policy layer on top of a JobSystem: one recurring daily job under a
fixed name, plus fire-and-forget one-shot runs. The JobSystem does the actual timing.

SystemdJobSystem is the production JobSystem. It writes a oneshot service and a timer into the
user's systemd unit directory and drives them with systemctl / systemd-run. systemd gives us
the guarantees the scheduler relies on:

- unit names are unique, so rewriting <name>.timer replaces the old registration
- a running oneshot service is not started a second time by its timer
- stopping a timer does not stop a service it already started
"""

import logging
import shlex
import shutil
import subprocess
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

DAILY = timedelta(days=1)
DEFAULT_JOB_NAME = "dailywall-daily"
USER_UNIT_DIR = Path("~/.config/systemd/user").expanduser()


class JobSystemError(Exception):
    """
    Raised when the host job system rejects or fails a request.
    """

    pass


@dataclass(frozen=True)
class ScheduleState:
    job_name: str
    active: bool


class JobSystem(ABC):
    @abstractmethod
    def register_periodic(
        self,
        name: str,
        interval: timedelta,
        command: Sequence[str],
        requires_network: bool = True,
    ) -> None:
        """Register command to run every interval, replacing any job with the same name."""

    @abstractmethod
    def cancel(self, name: str) -> None:
        """Remove the recurring job called name. Runs already in progress are left alone."""

    @abstractmethod
    def is_active(self, name: str) -> bool:
        """True if a non-finished job called name exists."""

    @abstractmethod
    def enqueue(self, command: Sequence[str]) -> str:
        """Start command once, without waiting for it. Returns an id for the run."""


class JobScheduler:
    def __init__(
        self,
        job_system: JobSystem,
        command: Sequence[str],
        job_name: str = DEFAULT_JOB_NAME,
    ):
        self.job_system = job_system
        self.command = list(command)
        self.job_name = job_name

    def schedule_daily(self, job_name: Optional[str] = None) -> bool:
        name = job_name or self.job_name
        logger.info("scheduling daily wallpaper generation as %s", name)

        try:
            self.job_system.register_periodic(
                name, DAILY, self.command, requires_network=True
            )
        except JobSystemError as error:
            logger.error("failed to schedule %s: %s", name, error)
            return False

        return True

    def cancel(self, job_name: Optional[str] = None) -> bool:
        name = job_name or self.job_name
        logger.info("cancelling %s", name)

        try:
            self.job_system.cancel(name)
        except JobSystemError as error:
            logger.error("failed to cancel %s: %s", name, error)
            return False

        return True

    def is_scheduled(self, job_name: Optional[str] = None) -> bool:
        name = job_name or self.job_name

        try:
            return self.job_system.is_active(name)
        except JobSystemError as error:
            logger.error("could not query %s: %s", name, error)
            return False

    def state(self, job_name: Optional[str] = None) -> ScheduleState:
        name = job_name or self.job_name
        return ScheduleState(job_name=name, active=self.is_scheduled(name))

    def run_once(self) -> bool:
        try:
            run_id = self.job_system.enqueue(self.command)
        except JobSystemError as error:
            logger.error("failed to start a one-off generation: %s", error)
            return False

        logger.info("one-off generation started as %s", run_id)
        return True


def _on_calendar(interval: timedelta) -> str:
    if interval == DAILY:
        return "daily"
    raise JobSystemError(f"Unsupported interval for a systemd timer: {interval}")


class SystemdJobSystem(JobSystem):
    """
    JobSystem backed by the systemd user manager.

    Network gating uses ExecCondition: when the probe command exits non-zero the service is
    skipped rather than marked failed, and the timer fires again the next day.
    """

    def __init__(
        self,
        unit_dir: Path = USER_UNIT_DIR,
        network_probe: Optional[Sequence[str]] = None,
    ):
        self.unit_dir = Path(unit_dir)
        self.network_probe = list(network_probe) if network_probe else None

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        executable = shutil.which(args[0])
        if executable is None:
            raise JobSystemError(f"{args[0]} not found: is systemd running?")

        try:
            return subprocess.run(
                [executable, *args[1:]], check=check, text=True, capture_output=True
            )
        except subprocess.CalledProcessError as error:
            raise JobSystemError(
                f"{' '.join(args)} failed: {(error.stderr or '').strip() or error}"
            ) from error
        except OSError as error:
            raise JobSystemError(f"Could not run {args[0]}: {error}") from error

    def _systemctl(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        return self._run("systemctl", "--user", *args, check=check)

    def service_unit(self, name: str, command: Sequence[str], requires_network: bool) -> str:
        lines = [
            "[Unit]",
            f"Description=dailywall wallpaper generation ({name})",
            "",
            "[Service]",
            "Type=oneshot",
        ]
        if requires_network and self.network_probe:
            lines.append(f"ExecCondition={shlex.join(self.network_probe)}")
        lines.append(f"ExecStart={shlex.join(command)}")
        return "\n".join(lines) + "\n"

    def timer_unit(self, name: str, interval: timedelta) -> str:
        return "\n".join(
            [
                "[Unit]",
                f"Description=Run {name} on a schedule",
                "",
                "[Timer]",
                f"OnCalendar={_on_calendar(interval)}",
                "Persistent=true",
                f"Unit={name}.service",
                "",
                "[Install]",
                "WantedBy=timers.target",
            ]
        ) + "\n"

    def register_periodic(self, name, interval, command, requires_network=True) -> None:
        timer = self.timer_unit(name, interval)
        service = self.service_unit(name, command, requires_network)

        try:
            self.unit_dir.mkdir(parents=True, exist_ok=True)
            (self.unit_dir / f"{name}.service").write_text(service)
            (self.unit_dir / f"{name}.timer").write_text(timer)
        except OSError as error:
            raise JobSystemError(f"Could not write unit files for {name}: {error}") from error

        self._systemctl("daemon-reload")
        self._systemctl("enable", f"{name}.timer")
        # restart so an already running timer picks up the rewritten unit
        self._systemctl("restart", f"{name}.timer")

    def cancel(self, name: str) -> None:
        timer = self.unit_dir / f"{name}.timer"
        service = self.unit_dir / f"{name}.service"

        if timer.exists():
            self._systemctl("disable", "--now", f"{name}.timer")

        for path in (timer, service):
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as error:
                raise JobSystemError(f"Could not remove {path}: {error}") from error

        self._systemctl("daemon-reload")

    def is_active(self, name: str) -> bool:
        # is-active reports "not active" through a non-zero exit status
        result = self._systemctl("is-active", "--quiet", f"{name}.timer", check=False)
        return result.returncode == 0

    def enqueue(self, command: Sequence[str]) -> str:
        unit = f"dailywall-once-{uuid.uuid4().hex[:12]}"
        self._run(
            "systemd-run", "--user", "--no-block", "--collect",
            f"--unit={unit}", *command,
        )
        return unit
