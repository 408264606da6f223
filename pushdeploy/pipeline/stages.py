"""
Deployment Stages

Each stage turns the shared context into a StageResult and raises a
PushDeployError subclass when it fails.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from pushdeploy.constants import (
    STAGE_MATERIALIZE,
    STAGE_RUNTIME,
    STAGE_SYNC,
    STAGE_TRANSITION,
    STAGE_TRUST,
)
from pushdeploy.exceptions import DeploymentError
from pushdeploy.models.deployment import (
    DeployConfig,
    ExtractedFileSet,
    TransitionAction,
    WorkingTree,
)
from pushdeploy.models.results import ResultStatus, StageResult
from pushdeploy.services.artifact_service import ArtifactService
from pushdeploy.services.process_service import ProcessService
from pushdeploy.services.runtime_service import RuntimeEnvironment, RuntimeService
from pushdeploy.services.source_service import SourceSyncService
from pushdeploy.services.ssh_service import LocalExecutor
from pushdeploy.services.trust_service import TrustStoreService


@dataclass
class PipelineContext:
    """State handed from stage to stage during one run."""

    config: DeployConfig
    executor: object
    local_executor: object = None
    working_tree: Optional[WorkingTree] = None
    extracted: Optional[ExtractedFileSet] = None
    runtime: Optional[RuntimeEnvironment] = None

    def __post_init__(self):
        if self.local_executor is None:
            self.local_executor = LocalExecutor()

    @property
    def host(self) -> str:
        return self.config.target.host

    @property
    def tree_path(self) -> str:
        return self.config.target.tree_path


class Stage(ABC):
    """One independently retryable step of a deployment."""

    name: str = ""
    title: str = ""

    def run(self, context: PipelineContext) -> StageResult:
        """Execute the stage and stamp its duration."""
        start_time = time.time()
        result = self.execute(context)
        result.duration_seconds = time.time() - start_time
        return result

    @abstractmethod
    def execute(self, context: PipelineContext) -> StageResult:
        """
        Execute stage logic.

        Must be implemented by subclasses.
        """
        pass


class TrustStage(Stage):
    """Install the deploy key and trust the target hosts."""

    name = STAGE_TRUST
    title = "Establishing SSH trust"

    def execute(self, context: PipelineContext) -> StageResult:
        settings = context.config.trust
        service = TrustStoreService(context.local_executor)
        warnings = []

        if settings.key_material:
            written = service.ensure_key(settings.key_path, settings.key_material)
            key_state = "written" if written else "already present"
        elif settings.key_path_expanded.exists():
            key_state = "already present"
        else:
            key_state = "missing"
            warnings.append(f"No key material given and no key at {settings.key_path}")

        report = service.ensure_known_hosts(
            settings.known_hosts_path,
            settings.hosts,
            port=context.config.target.port,
            key_types=settings.key_types,
        )
        for host, reason in report.failed.items():
            warnings.append(f"{host}: {reason}")

        details = {"key": key_state, **report.to_dict()}
        details.pop("status")

        if report.status == ResultStatus.FAILURE:
            raise DeploymentError(
                "Could not scan a host key for any host",
                context="; ".join(f"{h}: {r}" for h, r in report.failed.items()),
            )

        return StageResult(
            stage=self.name,
            status=report.status,
            message=(
                f"{len(report.added)} added, {len(report.skipped)} already trusted, "
                f"{len(report.failed)} failed"
            ),
            details=details,
            warnings=warnings,
        )


class SyncStage(Stage):
    """Hard-reset the remote tree to the deployment reference."""

    name = STAGE_SYNC
    title = "Synchronizing source tree"

    def execute(self, context: PipelineContext) -> StageResult:
        config = context.config
        service = SourceSyncService(
            context.executor, context.host, remote=config.git_remote, timeout=config.timeout
        )
        tree = service.sync_tree(context.tree_path, config.reference, config.use_tag_namespace)
        context.working_tree = tree

        namespace = "tag" if config.use_tag_namespace else "commit"
        return StageResult(
            stage=self.name,
            status=ResultStatus.SUCCESS,
            message=f"{context.tree_path} reset to {namespace} {config.reference} ({tree.reference[:12]})",
            details={"reference": config.reference, "namespace": namespace, "commit": tree.reference},
        )


class MaterializeStage(Stage):
    """Overlay the release archive, keeping untracked local files."""

    name = STAGE_MATERIALIZE
    title = "Extracting release artifact"

    def execute(self, context: PipelineContext) -> StageResult:
        config = context.config
        service = ArtifactService(context.executor, context.host, timeout=config.timeout)
        extracted = service.materialize(config.bundle, context.tree_path)
        context.extracted = extracted

        warnings = []
        if extracted.cleanup_error:
            warnings.append(f"Could not remove {config.bundle.path}: {extracted.cleanup_error}")

        return StageResult(
            stage=self.name,
            status=ResultStatus.SUCCESS,
            message=f"{len(extracted.written)} file(s) written, {len(extracted.preserved)} preserved",
            details=extracted.to_dict(),
            warnings=warnings,
        )


class RuntimeStage(Stage):
    """Select the runtime version and install locked dependencies."""

    name = STAGE_RUNTIME
    title = "Preparing runtime"

    def execute(self, context: PipelineContext) -> StageResult:
        config = context.config
        service = RuntimeService(context.executor, context.host, timeout=config.timeout)
        runtime = service.prepare_runtime(config.runtime_version)
        context.runtime = runtime
        install_command = service.install_dependencies(context.tree_path, runtime)

        return StageResult(
            stage=self.name,
            status=ResultStatus.SUCCESS,
            message=f"Node {runtime.resolved_version}, ran '{install_command}'",
            details={
                "version_spec": runtime.version_spec,
                "version": runtime.resolved_version,
                "install_command": install_command,
            },
        )


class TransitionStage(Stage):
    """Move the process manager onto the new release."""

    name = STAGE_TRANSITION
    title = "Transitioning process"

    def execute(self, context: PipelineContext) -> StageResult:
        config = context.config
        policy = config.transition

        if policy.is_skip:
            return StageResult(
                stage=self.name,
                status=ResultStatus.SKIPPED,
                message="Transition policy is skip; process manager untouched",
                details={"action": policy.action.value},
            )

        service = ProcessService(
            context.executor,
            context.host,
            cwd=context.tree_path,
            runtime=context.runtime,
            start_command=config.start_command,
            timeout=config.timeout,
        )
        outcome = service.apply(policy)

        verb = "reloaded" if policy.action == TransitionAction.ZERO_DOWNTIME_RELOAD else "restarted"
        if outcome.started_fresh:
            verb = "started"
        return StageResult(
            stage=self.name,
            status=ResultStatus.SUCCESS,
            message=f"{policy.process_name} {verb}",
            details=outcome.to_dict(),
            warnings=outcome.warnings,
        )


def default_stages() -> list[Stage]:
    """Stages in execution order."""
    return [TrustStage(), SyncStage(), MaterializeStage(), RuntimeStage(), TransitionStage()]
