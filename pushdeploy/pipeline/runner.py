"""
Deployment Pipeline

Runs stages strictly in order. The first failure halts the run; nothing is
rolled back, and stages after the failure are reported as skipped.
"""

from typing import Iterable, List, Optional

from pushdeploy.exceptions import PushDeployError
from pushdeploy.logger import DeployLogger
from pushdeploy.models.results import PipelineResult, ResultStatus, StageResult
from pushdeploy.pipeline.stages import PipelineContext, Stage, default_stages


class DeploymentPipeline:
    """Ordered list of stages sharing one context."""

    def __init__(
        self,
        stages: Optional[Iterable[Stage]] = None,
        logger: Optional[DeployLogger] = None,
        skip: Iterable[str] = (),
    ):
        """
        Initialize pipeline.

        Args:
            stages: Stages in order (defaults to the five deployment stages)
            logger: Logger for step output, None for silent runs (JSON mode)
            skip: Stage names not to run
        """
        self.stages: List[Stage] = list(stages) if stages is not None else default_stages()
        self.logger = logger
        self.skip = set(skip)

    @property
    def stage_names(self) -> List[str]:
        return [stage.name for stage in self.stages]

    def run(self, context: PipelineContext) -> PipelineResult:
        """
        Execute every stage until one fails.

        Returns:
            PipelineResult with one StageResult per stage
        """
        result = PipelineResult()
        failed: Optional[StageResult] = None

        for stage in self.stages:
            if failed is not None:
                result.stages.append(
                    StageResult(
                        stage=stage.name,
                        status=ResultStatus.SKIPPED,
                        message=f"Not run: '{failed.stage}' failed",
                    )
                )
                continue

            if stage.name in self.skip:
                result.stages.append(
                    StageResult(stage=stage.name, status=ResultStatus.SKIPPED, message="Skipped by request")
                )
                continue

            stage_result = self._run_stage(stage, context)
            result.stages.append(stage_result)
            if stage_result.is_failure:
                failed = stage_result

        return result

    def _run_stage(self, stage: Stage, context: PipelineContext) -> StageResult:
        if self.logger:
            self.logger.step(stage.title)

        try:
            stage_result = stage.run(context)
        except PushDeployError as e:
            if self.logger:
                self.logger.log_error(e.message, context=e.context)
            details = {"error": type(e).__name__}
            if e.context:
                details["context"] = e.context
            return StageResult(
                stage=stage.name,
                status=ResultStatus.FAILURE,
                message=e.message,
                details=details,
            )

        if self.logger:
            for warning in stage_result.warnings:
                self.logger.warning(warning)
            self.logger.success(stage_result.message)

        return stage_result
