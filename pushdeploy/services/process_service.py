"""
Process Transition Service

Moves a pm2-managed process onto the freshly deployed release.
"""

import json
import shlex
from dataclasses import dataclass, field
from typing import List, Optional

from pushdeploy.constants import DEFAULT_START_COMMAND
from pushdeploy.exceptions import (
    ConfigurationError,
    ProcessControlError,
    ProcessNotRegisteredError,
)
from pushdeploy.models.deployment import ProcessTransitionPolicy, TransitionAction
from pushdeploy.services.runtime_service import RuntimeEnvironment


@dataclass
class TransitionOutcome:
    """What the controller asked pm2 to do."""

    action: TransitionAction
    process_name: Optional[str] = None
    commands: List[str] = field(default_factory=list)
    started_fresh: bool = False
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "action": self.action.value,
            "process": self.process_name,
            "commands": self.commands,
            "started_fresh": self.started_fresh,
        }


def parse_jlist(output: str) -> List[str]:
    """
    Extract process names from `pm2 jlist` output.

    pm2 may print daemon notices ("[PM2] Spawning ...") before the JSON
    array; the last line that parses as an array wins.

    Raises:
        ProcessControlError: If no JSON array can be read
    """
    processes = None
    for line in reversed(output.splitlines()):
        line = line.strip()
        if not line.startswith("["):
            continue
        try:
            decoded = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(decoded, list):
            processes = decoded
            break

    if processes is None:
        raise ProcessControlError("Unexpected pm2 jlist output", context=output[:200] or None)

    names = []
    for process in processes:
        name = process.get("name") if isinstance(process, dict) else None
        if name and name not in names:
            names.append(name)
    return names


class ProcessService:
    """
    Service driving pm2 through skip, hard restart or zero-downtime reload.

    A failed transition is reported, never undone: earlier stages keep their
    effect.
    """

    def __init__(
        self,
        executor,
        host: str,
        cwd: str,
        runtime: Optional[RuntimeEnvironment] = None,
        start_command: str = DEFAULT_START_COMMAND,
        timeout: Optional[int] = None,
    ):
        """
        Initialize process service.

        Args:
            executor: SSHService (or LocalExecutor)
            host: Target host
            cwd: Working tree the process runs from
            runtime: Runtime whose PATH provides pm2
            start_command: Command pm2 runs when the process is not registered
            timeout: Per-command timeout in seconds
        """
        self.executor = executor
        self.host = host
        self.cwd = cwd
        self.runtime = runtime
        self.start_command = start_command
        self.timeout = timeout

    def apply(self, policy: ProcessTransitionPolicy) -> TransitionOutcome:
        """
        Apply a transition policy.

        Raises:
            ProcessControlError: If pm2 reports a failed stop/start/reload
            ProcessNotRegisteredError: If a reload targets an unknown process
        """
        outcome = TransitionOutcome(action=policy.action, process_name=policy.process_name)

        if policy.action == TransitionAction.SKIP:
            return outcome

        if policy.action == TransitionAction.HARD_RESTART:
            self._hard_restart(policy.process_name, outcome)
        elif policy.action == TransitionAction.ZERO_DOWNTIME_RELOAD:
            self._reload(policy.process_name, outcome)

        self._save(outcome)
        return outcome

    def registered_processes(self) -> List[str]:
        """Names of all processes pm2 currently knows."""
        result = self._pm2("jlist")
        if result.is_failure:
            raise ProcessControlError("pm2 jlist failed", context=result.output)
        return parse_jlist(result.stdout)

    def _hard_restart(self, name: str, outcome: TransitionOutcome) -> None:
        # A stopped or unknown process makes stop fail; start still follows
        stop = self._pm2("stop", name)
        outcome.commands.append(f"pm2 stop {name}")
        if stop.is_failure:
            outcome.warnings.append(f"pm2 stop {name} reported: {stop.output or stop.returncode}")

        if name in self.registered_processes():
            start = self._pm2("start", name)
            outcome.commands.append(f"pm2 start {name}")
        else:
            args = self._start_args(name)
            start = self._pm2(*args, cwd=self.cwd)
            outcome.commands.append("pm2 " + " ".join(args))
            outcome.started_fresh = True

        if start.is_failure:
            raise ProcessControlError(f"pm2 could not start '{name}'", context=start.output)

    def _reload(self, name: str, outcome: TransitionOutcome) -> None:
        registered = self.registered_processes()
        if name not in registered:
            raise ProcessNotRegisteredError(name, registered)

        reload = self._pm2("reload", name)
        outcome.commands.append(f"pm2 reload {name}")
        if reload.is_failure:
            raise ProcessControlError(f"pm2 reload of '{name}' failed", context=reload.output)

    def _save(self, outcome: TransitionOutcome) -> None:
        """Persist the process list so pm2 resurrects it on boot (best-effort)."""
        result = self._pm2("save")
        if result.is_failure:
            outcome.warnings.append(f"pm2 save failed: {result.output or result.returncode}")

    def _start_args(self, name: str) -> List[str]:
        parts = shlex.split(self.start_command)
        if not parts:
            raise ConfigurationError("Start command is empty", context="Pass --start-command")
        script, script_args = parts[0], parts[1:]
        args = ["start", script, "--name", name]
        if script_args:
            args += ["--"] + script_args
        return args

    def _pm2(self, *args: str, cwd: Optional[str] = None):
        command = " ".join(shlex.quote(part) for part in ("pm2",) + args)
        if cwd:
            command = f"cd {shlex.quote(cwd)} && {command}"
        if self.runtime:
            command = self.runtime.wrap(command)
        return self.executor.execute_command(self.host, command, timeout=self.timeout)
