"""
SSH Configuration Models

Dataclass models for SSH operations.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pushdeploy.constants import DEFAULT_SSH_PORT


@dataclass
class SSHConfig:
    """SSH configuration for connecting to the deployment host."""

    key_path: str
    user: str
    known_hosts_path: Optional[str] = None
    port: int = DEFAULT_SSH_PORT

    @property
    def key_path_expanded(self) -> Path:
        """Get expanded key path (resolves ~)."""
        return Path(self.key_path).expanduser()

    @property
    def known_hosts_path_expanded(self) -> Optional[Path]:
        """Get expanded trust store path (resolves ~)."""
        if self.known_hosts_path:
            return Path(self.known_hosts_path).expanduser()
        return None

    @property
    def key_exists(self) -> bool:
        """Check if private key file exists."""
        return self.key_path_expanded.exists()

    def __repr__(self) -> str:
        return f"SSHConfig(user={self.user}, key={self.key_path}, port={self.port})"


@dataclass
class SSHConnection:
    """SSH connection details for a specific host."""

    host: str
    config: SSHConfig

    @property
    def connection_string(self) -> str:
        """Get SSH connection string (user@host)."""
        return f"{self.config.user}@{self.host}"

    @property
    def ssh_options(self) -> list[str]:
        """
        Options shared by ssh and scp.

        Host keys are checked strictly against the trust store written by
        the trust stage; BatchMode keeps a missing key from prompting.
        """
        options = [
            "-i",
            str(self.config.key_path_expanded),
            "-o",
            "BatchMode=yes",
            "-o",
            "StrictHostKeyChecking=yes",
            "-o",
            "LogLevel=ERROR",
        ]
        known_hosts = self.config.known_hosts_path_expanded
        if known_hosts:
            options.extend(["-o", f"UserKnownHostsFile={known_hosts}"])
        return options

    @property
    def ssh_command_prefix(self) -> list[str]:
        """Get SSH command prefix for subprocess."""
        return (
            ["ssh", "-p", str(self.config.port)]
            + self.ssh_options
            + [self.connection_string]
        )

    def build_command(self, remote_command: str) -> list[str]:
        """Build full SSH command with remote command."""
        return self.ssh_command_prefix + [remote_command]

    def build_upload(self, local_path: Path, remote_path: str) -> list[str]:
        """Build scp command copying a local file to the host."""
        return (
            ["scp", "-P", str(self.config.port)]
            + self.ssh_options
            + [str(local_path), f"{self.connection_string}:{remote_path}"]
        )

    def __repr__(self) -> str:
        return f"SSHConnection(host={self.host}, user={self.config.user})"
