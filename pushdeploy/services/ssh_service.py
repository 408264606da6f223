"""SSH service for executing commands on remote hosts."""

import shlex
import subprocess
import time
from pathlib import Path
from typing import Optional

from pushdeploy.constants import SSH_CONNECTION_ERROR_CODE
from pushdeploy.exceptions import ConnectionLostError, SSHError
from pushdeploy.models.ssh import SSHConfig, SSHConnection
from pushdeploy.models.results import SSHResult


class SSHService:
    """Service for SSH operations."""

    def __init__(self, config: SSHConfig, logger=None):
        """
        Initialize SSH service.

        Args:
            config: SSH configuration
            logger: Optional DeployLogger receiving every command and its output
        """
        self.config = config
        self.logger = logger

    def connection(self, host: str) -> SSHConnection:
        return SSHConnection(host=host, config=self.config)

    def execute_command(
        self,
        host: str,
        command: str,
        timeout: Optional[int] = None,
        capture_output: bool = True,
    ) -> SSHResult:
        """
        Execute command on remote host via SSH.

        Args:
            host: Host IP or hostname
            command: Command to execute (run by the remote login shell)
            timeout: Command timeout in seconds (None waits indefinitely)
            capture_output: Whether to capture stdout/stderr

        Returns:
            SSHResult with execution details

        Raises:
            ConnectionLostError: If ssh itself failed (exit status 255)
            SSHError: If the command timed out or ssh could not be started
        """
        ssh_cmd = self.connection(host).build_command(command)
        result = _run(ssh_cmd, host, command, timeout, capture_output, self.logger)

        if result.returncode == SSH_CONNECTION_ERROR_CODE:
            raise ConnectionLostError(host, command, result.stderr)

        return result

    def upload_file(
        self,
        host: str,
        local_path: Path,
        remote_path: str,
        timeout: Optional[int] = None,
    ) -> SSHResult:
        """
        Copy a local file to the remote host with scp.

        Args:
            host: Host IP or hostname
            local_path: File to upload
            remote_path: Destination path on the host
            timeout: Transfer timeout in seconds

        Returns:
            SSHResult with execution details
        """
        if not Path(local_path).is_file():
            raise FileNotFoundError(f"Artifact not found: {local_path}")

        scp_cmd = self.connection(host).build_upload(Path(local_path), remote_path)
        result = _run(scp_cmd, host, f"scp {local_path} {remote_path}", timeout, True, self.logger)

        if result.returncode == SSH_CONNECTION_ERROR_CODE:
            raise ConnectionLostError(host, result.command, result.stderr)

        return result


class LocalExecutor:
    """Runs commands on this machine with the same interface as SSHService."""

    def __init__(self, logger=None):
        self.logger = logger

    def execute_command(
        self,
        host: str,
        command: str,
        timeout: Optional[int] = None,
        capture_output: bool = True,
    ) -> SSHResult:
        """
        Execute command locally through bash.

        Args:
            host: Label recorded on the result (no connection is made)
            command: Shell command
            timeout: Command timeout in seconds
            capture_output: Whether to capture stdout/stderr

        Returns:
            SSHResult with execution details
        """
        return _run(["bash", "-c", command], host, command, timeout, capture_output, self.logger)

    def upload_file(
        self,
        host: str,
        local_path: Path,
        remote_path: str,
        timeout: Optional[int] = None,
    ) -> SSHResult:
        """Copy a file to another local path."""
        if not Path(local_path).is_file():
            raise FileNotFoundError(f"Artifact not found: {local_path}")
        command = f"cp {shlex.quote(str(local_path))} {shlex.quote(remote_path)}"
        return _run(["bash", "-c", command], host, command, timeout, True, self.logger)


def _run(
    argv: list[str],
    host: str,
    command: str,
    timeout: Optional[int],
    capture_output: bool,
    logger=None,
) -> SSHResult:
    start_time = time.time()
    if logger:
        logger.log_command(f"[{host}] {command}")

    try:
        result = subprocess.run(
            argv,
            capture_output=capture_output,
            encoding="utf-8",
            # file names in listings must round-trip into later commands
            errors="surrogateescape",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise SSHError(
            f"Command timed out after {timeout}s",
            context=f"Host: {host}, Command: {command}",
        )
    except OSError as e:
        raise SSHError(
            f"Could not start {argv[0]}: {e}",
            context=f"Host: {host}, Command: {command}",
        )

    ssh_result = SSHResult(
        returncode=result.returncode,
        stdout=result.stdout if capture_output else "",
        stderr=result.stderr if capture_output else "",
        host=host,
        command=command,
        duration_seconds=time.time() - start_time,
    )

    if logger:
        logger.log_output(ssh_result.stdout, "stdout")
        logger.log_output(ssh_result.stderr, "stderr")

    return ssh_result
