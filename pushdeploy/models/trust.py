"""
Trust Store Models

Dataclass models for SSH key material and known_hosts entries.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from pushdeploy.constants import SSH_KEY_PERMISSIONS
from pushdeploy.models.results import ResultStatus


@dataclass(frozen=True)
class SSHKeyMaterial:
    """Private key destined for a fixed path, owner read/write only."""

    path: Path
    content: bytes
    permission_mode: int = SSH_KEY_PERMISSIONS

    @property
    def normalized_content(self) -> bytes:
        """Key bytes with LF line endings and a trailing newline (OpenSSH rejects keys without one)."""
        content = self.content.replace(b"\r\n", b"\n")
        if content and not content.endswith(b"\n"):
            content += b"\n"
        return content

    def __repr__(self) -> str:
        return f"SSHKeyMaterial(path={self.path}, bytes={len(self.content)})"


@dataclass(frozen=True)
class HostTrustEntry:
    """One known_hosts line for a host."""

    hostname: str
    key_material: bytes
    hashed: bool = True

    @property
    def line(self) -> str:
        return self.key_material.decode("utf-8").rstrip("\n")


@dataclass
class ProbeReport:
    """Per-host outcome of a known_hosts update."""

    added: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def status(self) -> ResultStatus:
        """Failures next to successes are partial; only an all-failed batch fails."""
        if not self.failed:
            return ResultStatus.SUCCESS
        if self.added or self.skipped:
            return ResultStatus.PARTIAL
        return ResultStatus.FAILURE

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "added": self.added,
            "skipped": self.skipped,
            "failed": self.failed,
        }
