"""
Runtime Service

Selects the Node.js version through nvm and installs dependencies from the
lockfile. Every SSH command starts a fresh shell, so the selected version is
carried as an activation prefix that later commands are wrapped with.
"""

import posixpath
import shlex
from dataclasses import dataclass
from typing import Iterable, Optional

from pushdeploy.constants import LOCKFILE_INSTALL_COMMANDS, NVM_ACTIVATE
from pushdeploy.exceptions import DependencyInstallError, RuntimeNotAvailableError


@dataclass(frozen=True)
class RuntimeEnvironment:
    """An installed runtime version and the shell prefix that activates it."""

    version_spec: str
    resolved_version: str

    @property
    def activate_command(self) -> str:
        return f"{NVM_ACTIVATE} && nvm use --silent {shlex.quote(self.resolved_version)}"

    def wrap(self, command: str) -> str:
        """Run command with this runtime on PATH."""
        return f"{self.activate_command} && {command}"


def select_install_command(lockfiles: Iterable[str]) -> Optional[str]:
    """
    Pick the reproducible install command for the lockfiles present.

    Args:
        lockfiles: File names found at the tree root

    Returns:
        Install command, or None when there is no supported lockfile
    """
    present = set(lockfiles)
    for lockfile, command in LOCKFILE_INSTALL_COMMANDS:
        if lockfile in present:
            return command
    return None


class RuntimeService:
    """Service for runtime selection and dependency installation."""

    def __init__(self, executor, host: str, timeout: Optional[int] = None):
        """
        Initialize runtime service.

        Args:
            executor: SSHService (or LocalExecutor)
            host: Target host
            timeout: Per-command timeout in seconds
        """
        self.executor = executor
        self.host = host
        self.timeout = timeout

    def prepare_runtime(self, version_spec: str) -> RuntimeEnvironment:
        """
        Resolve version_spec against the versions nvm already has installed.

        Nothing is installed on demand.

        Raises:
            RuntimeNotAvailableError: If nvm is missing or no installed
                version matches
        """
        version_spec = str(version_spec).strip()
        result = self._run(f"{NVM_ACTIVATE} && nvm version {shlex.quote(version_spec)}")
        resolved = result.stdout.strip().splitlines()[-1:] if result.stdout.strip() else []

        if result.is_failure:
            raise RuntimeNotAvailableError(version_spec, context=result.output or None)
        if not resolved or resolved[0] in ("N/A", "none"):
            raise RuntimeNotAvailableError(version_spec)

        return RuntimeEnvironment(version_spec=version_spec, resolved_version=resolved[0])

    def install_dependencies(self, tree: str, runtime: RuntimeEnvironment) -> str:
        """
        Install dependencies exactly as the lockfile pins them.

        Args:
            tree: Working tree root on the host
            runtime: Activated runtime to install with

        Returns:
            The install command that ran

        Raises:
            DependencyInstallError: If there is no lockfile or the install fails
        """
        names = [lockfile for lockfile, _ in LOCKFILE_INSTALL_COMMANDS]
        probe = " ; ".join(
            f"test -f {shlex.quote(posixpath.join(tree, name))} && echo {shlex.quote(name)}"
            for name in names
        )
        listing = self._run(f"{probe} ; true")
        install_command = select_install_command(listing.stdout.split())

        if install_command is None:
            raise DependencyInstallError(
                f"No lockfile found in {tree}",
                context=f"Expected one of: {', '.join(names)}",
            )

        result = self._run(runtime.wrap(f"cd {shlex.quote(tree)} && {install_command}"))
        if result.is_failure:
            raise DependencyInstallError(
                f"'{install_command}' failed in {tree}",
                context=_tail(result.output),
            )
        return install_command

    def _run(self, command: str):
        return self.executor.execute_command(self.host, command, timeout=self.timeout)


def _tail(output: str, lines: int = 20) -> str:
    return "\n".join(output.splitlines()[-lines:])
