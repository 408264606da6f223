"""
Result Models

Dataclass models for operation results, command outputs and stage status.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from enum import Enum


class ResultStatus(Enum):
    """Status of an operation result."""

    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"
    SKIPPED = "skipped"


@dataclass
class ValidationResult:
    """Result of a validation operation."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if validation has errors."""
        return len(self.errors) > 0

    @property
    def has_warnings(self) -> bool:
        """Check if validation has warnings."""
        return len(self.warnings) > 0

    def add_error(self, error: str) -> None:
        """Add an error to the validation result."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning to the validation result."""
        self.warnings.append(warning)

    def __repr__(self) -> str:
        return f"ValidationResult(valid={self.is_valid}, errors={len(self.errors)}, warnings={len(self.warnings)})"


@dataclass
class SSHResult:
    """Result of a command execution (remote over SSH, or local)."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    host: str = ""
    command: str = ""
    duration_seconds: float = 0.0

    @property
    def is_success(self) -> bool:
        """Check if command succeeded."""
        return self.returncode == 0

    @property
    def is_failure(self) -> bool:
        """Check if command failed."""
        return self.returncode != 0

    @property
    def output(self) -> str:
        """Get combined output (stdout + stderr)."""
        return f"{self.stdout}\n{self.stderr}".strip()

    def __repr__(self) -> str:
        return f"SSHResult(host={self.host}, returncode={self.returncode}, duration={self.duration_seconds:.2f}s)"


@dataclass
class StageResult:
    """Outcome of a single pipeline stage."""

    stage: str
    status: ResultStatus
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def is_failure(self) -> bool:
        """Check if the stage failed (halts the pipeline)."""
        return self.status == ResultStatus.FAILURE

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "stage": self.stage,
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
            "warnings": self.warnings,
            "duration_seconds": round(self.duration_seconds, 3),
        }

    def __repr__(self) -> str:
        return f"StageResult(stage={self.stage}, status={self.status.value})"


@dataclass
class PipelineResult:
    """Per-stage outcome of a deployment run."""

    stages: List[StageResult] = field(default_factory=list)

    @property
    def status(self) -> ResultStatus:
        """Overall status: failure wins, then partial, otherwise success."""
        statuses = {stage.status for stage in self.stages}
        if ResultStatus.FAILURE in statuses:
            return ResultStatus.FAILURE
        if ResultStatus.PARTIAL in statuses:
            return ResultStatus.PARTIAL
        return ResultStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.status == ResultStatus.FAILURE

    @property
    def failed_stage(self) -> Optional[StageResult]:
        """First failed stage, if any."""
        for stage in self.stages:
            if stage.is_failure:
                return stage
        return None

    def get(self, stage_name: str) -> Optional[StageResult]:
        for stage in self.stages:
            if stage.stage == stage_name:
                return stage
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "status": self.status.value,
            "stages": [stage.to_dict() for stage in self.stages],
        }
