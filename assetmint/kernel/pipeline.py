"""
Stage Pipeline

Runs a short, ordered list of async stages over a shared context object.

Each stage is tagged required or optional:
- an optional stage that fails is logged and recorded as DEGRADED, and the
  pipeline moves on with whatever the context already holds
- a required stage that fails stops the pipeline and its exception
  propagates to the caller unchanged

Stages never run concurrently; each one sees every change made to the
context by the stages before it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

C = TypeVar("C")


class StageStatus(str, Enum):
    COMPLETED = "completed"
    DEGRADED = "degraded"
    FAILED = "failed"


class StageFailedError(Exception):
    """Raised by a stage handler to fail its stage with a message."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"[{stage}] {message}")


@dataclass(frozen=True)
class Stage(Generic[C]):
    """A named step; handler mutates the context in place."""

    name: str
    handler: Callable[[C], Awaitable[None]]
    required: bool = True


@dataclass
class StageResult:
    stage: str
    status: StageStatus
    error: str | None = None
    duration_ms: float = 0.0


@dataclass
class PipelineResult(Generic[C]):
    context: C
    stages: list[StageResult] = field(default_factory=list)

    @property
    def degraded(self) -> list[str]:
        """Names of optional stages that fell back."""
        return [s.stage for s in self.stages if s.status == StageStatus.DEGRADED]

    @property
    def duration_ms(self) -> float:
        return sum(s.duration_ms for s in self.stages)


class StagePipeline(Generic[C]):
    """Ordered required/optional stages."""

    def __init__(self, name: str, stages: list[Stage[C]]):
        if not stages:
            raise ValueError("A pipeline needs at least one stage")
        names = [s.name for s in stages]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate stage names in pipeline {name}: {names}")
        self.name = name
        self.stages = list(stages)

    async def run(self, context: C) -> PipelineResult[C]:
        result: PipelineResult[C] = PipelineResult(context=context)

        for stage in self.stages:
            start = time.perf_counter()
            try:
                await stage.handler(context)
            except Exception as e:
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                error = e.message if isinstance(e, StageFailedError) else str(e)

                if stage.required:
                    result.stages.append(
                        StageResult(stage.name, StageStatus.FAILED, error, duration_ms)
                    )
                    logger.warning(
                        "pipeline_stage_failed",
                        pipeline=self.name,
                        stage=stage.name,
                        error=error,
                    )
                    raise

                result.stages.append(
                    StageResult(stage.name, StageStatus.DEGRADED, error, duration_ms)
                )
                logger.warning(
                    "pipeline_stage_degraded",
                    pipeline=self.name,
                    stage=stage.name,
                    error=error,
                )
                continue

            result.stages.append(
                StageResult(
                    stage.name,
                    StageStatus.COMPLETED,
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                )
            )

        logger.debug(
            "pipeline_completed",
            pipeline=self.name,
            degraded=result.degraded,
            duration_ms=result.duration_ms,
        )
        return result
