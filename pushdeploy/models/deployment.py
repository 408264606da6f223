"""
Deployment Models

Dataclass models describing one deployment run and its moving parts.
"""

import posixpath
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List

from pushdeploy.constants import (
    DEFAULT_DEPLOY_PATH,
    DEFAULT_GIT_REMOTE,
    DEFAULT_KNOWN_HOSTS_NAME,
    DEFAULT_RUNTIME_VERSION,
    DEFAULT_SSH_DIR,
    DEFAULT_SSH_KEY_PATH,
    DEFAULT_SSH_PORT,
    DEFAULT_SSH_USER,
    DEFAULT_START_COMMAND,
)
from pushdeploy.exceptions import ConfigurationError


class TransitionAction(Enum):
    """How the process manager moves to the new release."""

    SKIP = "skip"
    HARD_RESTART = "restart"
    ZERO_DOWNTIME_RELOAD = "reload"

    @classmethod
    def from_name(cls, name: str) -> "TransitionAction":
        """Parse a CLI/config name (skip, restart, reload)."""
        normalized = (name or "").strip().lower()
        for action in cls:
            if action.value == normalized:
                return action
        raise ConfigurationError(
            f"Unknown transition policy '{name}'",
            context=f"Expected one of: {', '.join(a.value for a in cls)}",
        )


@dataclass(frozen=True)
class ProcessTransitionPolicy:
    """Transition action paired with the pm2 process it targets."""

    action: TransitionAction = TransitionAction.SKIP
    process_name: Optional[str] = None

    def __post_init__(self):
        if self.action != TransitionAction.SKIP and not self.process_name:
            raise ConfigurationError(
                f"A process name is required for the '{self.action.value}' transition",
                context="Pass --process <name> or use --transition skip",
            )

    @classmethod
    def parse(cls, name: str, process_name: Optional[str] = None) -> "ProcessTransitionPolicy":
        return cls(TransitionAction.from_name(name), process_name or None)

    @property
    def is_skip(self) -> bool:
        return self.action == TransitionAction.SKIP


@dataclass(frozen=True)
class DeploymentTarget:
    """Immutable description of where one deployment run goes."""

    host: str
    app_name: str
    username: str = DEFAULT_SSH_USER
    deploy_path: str = DEFAULT_DEPLOY_PATH
    port: int = DEFAULT_SSH_PORT

    @property
    def tree_path(self) -> str:
        """Remote working tree root (<deploy_path>/<app_name>)."""
        return posixpath.join(self.deploy_path, self.app_name)

    def __repr__(self) -> str:
        return f"DeploymentTarget({self.username}@{self.host}:{self.tree_path})"


@dataclass(frozen=True)
class ArtifactBundle:
    """Compressed release archive on the remote host."""

    path: str
    reference: Optional[str] = None
    checksum: Optional[str] = None
    local_path: Optional[Path] = None

    @property
    def needs_upload(self) -> bool:
        return self.local_path is not None


@dataclass
class WorkingTree:
    """On-disk checkout of the application on the host."""

    root: str
    reference: Optional[str] = None


@dataclass
class ExtractedFileSet:
    """What a materialization wrote, kept, and cleaned up."""

    written: List[str] = field(default_factory=list)
    preserved: List[str] = field(default_factory=list)
    bundle_removed: bool = False
    cleanup_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "written": len(self.written),
            "preserved": sorted(self.preserved),
            "bundle_removed": self.bundle_removed,
            "cleanup_error": self.cleanup_error,
        }


@dataclass
class TrustSettings:
    """Inputs for the trust stage."""

    key_material: Optional[str] = None
    key_path: str = DEFAULT_SSH_KEY_PATH
    hosts: List[str] = field(default_factory=list)
    ssh_dir: str = DEFAULT_SSH_DIR
    key_types: Optional[str] = None

    @property
    def ssh_dir_expanded(self) -> Path:
        return Path(self.ssh_dir).expanduser()

    @property
    def key_path_expanded(self) -> Path:
        return Path(self.key_path).expanduser()

    @property
    def known_hosts_path(self) -> Path:
        return self.ssh_dir_expanded / DEFAULT_KNOWN_HOSTS_NAME


@dataclass
class DeployConfig:
    """Fully resolved configuration for one deployment run."""

    target: DeploymentTarget
    bundle: ArtifactBundle
    reference: str
    trust: TrustSettings = field(default_factory=TrustSettings)
    use_tag_namespace: bool = False
    runtime_version: str = DEFAULT_RUNTIME_VERSION
    transition: ProcessTransitionPolicy = field(default_factory=ProcessTransitionPolicy)
    start_command: str = DEFAULT_START_COMMAND
    git_remote: str = DEFAULT_GIT_REMOTE
    skip_trust: bool = False
    timeout: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for display (never includes key material)."""
        return {
            "host": self.target.host,
            "port": self.target.port,
            "username": self.target.username,
            "app": self.target.app_name,
            "tree": self.target.tree_path,
            "artifact": self.bundle.path,
            "upload_from": str(self.bundle.local_path) if self.bundle.local_path else None,
            "checksum": self.bundle.checksum,
            "reference": self.reference,
            "namespace": "tag" if self.use_tag_namespace else "commit",
            "runtime_version": self.runtime_version,
            "transition": self.transition.action.value,
            "process": self.transition.process_name,
            "trusted_hosts": list(self.trust.hosts),
            "skip_trust": self.skip_trust,
        }
