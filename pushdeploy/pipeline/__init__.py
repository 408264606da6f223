"""
pushdeploy Pipeline

Ordered deployment stages behind a common Stage interface.
"""

from .stages import (
    PipelineContext,
    Stage,
    TrustStage,
    SyncStage,
    MaterializeStage,
    RuntimeStage,
    TransitionStage,
    default_stages,
)
from .runner import DeploymentPipeline

__all__ = [
    "PipelineContext",
    "Stage",
    "TrustStage",
    "SyncStage",
    "MaterializeStage",
    "RuntimeStage",
    "TransitionStage",
    "default_stages",
    "DeploymentPipeline",
]
