"""
pushdeploy Services Layer

One service per deployment concern; each takes a command executor so it
can run against a real host or a fake in tests.
"""

from .ssh_service import SSHService, LocalExecutor
from .config_service import ConfigService
from .trust_service import TrustStoreService
from .source_service import SourceSyncService
from .artifact_service import ArtifactService
from .runtime_service import RuntimeService, RuntimeEnvironment
from .process_service import ProcessService

__all__ = [
    "SSHService",
    "LocalExecutor",
    "ConfigService",
    "TrustStoreService",
    "SourceSyncService",
    "ArtifactService",
    "RuntimeService",
    "RuntimeEnvironment",
    "ProcessService",
]
