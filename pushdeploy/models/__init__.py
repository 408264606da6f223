"""
pushdeploy Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .results import (
    ResultStatus,
    ValidationResult,
    SSHResult,
    StageResult,
    PipelineResult,
)
from .deployment import (
    TransitionAction,
    ProcessTransitionPolicy,
    DeploymentTarget,
    ArtifactBundle,
    WorkingTree,
    ExtractedFileSet,
    TrustSettings,
    DeployConfig,
)
from .trust import (
    SSHKeyMaterial,
    HostTrustEntry,
    ProbeReport,
)
from .ssh import (
    SSHConfig,
    SSHConnection,
)

__all__ = [
    # Results
    "ResultStatus",
    "ValidationResult",
    "SSHResult",
    "StageResult",
    "PipelineResult",
    # Deployment
    "TransitionAction",
    "ProcessTransitionPolicy",
    "DeploymentTarget",
    "ArtifactBundle",
    "WorkingTree",
    "ExtractedFileSet",
    "TrustSettings",
    "DeployConfig",
    # Trust
    "SSHKeyMaterial",
    "HostTrustEntry",
    "ProbeReport",
    # SSH
    "SSHConfig",
    "SSHConnection",
]
