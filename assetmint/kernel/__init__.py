"""
AssetMint Kernel

Execution primitives shared by the services: staged pipelines with
required and optional stages, and a queue for detached background tasks.
"""

from assetmint.kernel.pipeline import (
    PipelineResult,
    Stage,
    StageFailedError,
    StagePipeline,
    StageResult,
    StageStatus,
)
from assetmint.kernel.task_queue import TaskQueue

__all__ = [
    "PipelineResult",
    "Stage",
    "StageFailedError",
    "StagePipeline",
    "StageResult",
    "StageStatus",
    "TaskQueue",
]
