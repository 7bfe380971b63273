"""
Pipeline orchestration for the git content source.

One run walks the sync, import and reference stages in a fixed order.
Each stage reads the outputs of the stages before it from the run
state, and the first stage to fail ends the run.
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from gitsource.core.config import PipelineConfig, Config
from gitsource.core.exceptions import GitSourceError

logger = logging.getLogger(__name__)


class StageStatus(Enum):
    """Status of a pipeline stage."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class StageResult:
    """Outcome of one stage: its status, metrics and how long it took."""

    status: StageStatus = StageStatus.RUNNING
    metrics: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    elapsed: float = 0.0


@dataclass
class PipelineState:
    """
    State of one import run.

    ``data`` holds each completed stage's output keyed by stage name;
    ``failure`` holds the error that stopped the run, if any.
    """

    pipeline_id: str
    source: str
    stage_results: Dict[str, StageResult] = field(default_factory=dict)
    data: Dict[str, Any] = field(default_factory=dict)
    failure: Optional[GitSourceError] = None

    @property
    def succeeded(self) -> bool:
        return self.failure is None

    def get_stage_status(self, stage_name: str) -> StageStatus:
        result = self.stage_results.get(stage_name)
        return result.status if result else StageStatus.PENDING


class PipelineStage(ABC):
    """
    Abstract base class for pipeline stages.

    A stage names the stages whose output it reads; the pipeline
    refuses an order that runs a stage before them.
    """

    def __init__(self, config: PipelineConfig):
        self.config = config
        self.logger = logging.getLogger(f"{__name__}.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this stage."""
        pass

    @property
    def dependencies(self) -> List[str]:
        """Stages whose output this stage reads."""
        return []

    @abstractmethod
    def execute(self, state: PipelineState) -> Tuple[Any, Dict[str, Any]]:
        """
        Execute the stage.

        Args:
            state: Run state with the outputs of earlier stages.

        Returns:
            Tuple of (output_data, metrics_dict).

        Raises:
            GitSourceError: If the stage fails.
        """
        pass


class Pipeline:
    """
    Runs the registered stages of one import run in order.

    A stage raising GitSourceError stops the run; the error is kept on
    the returned state for the caller to inspect.
    """

    def __init__(self, config: PipelineConfig = None):
        self.config = config or Config.get()
        self.stages: Dict[str, PipelineStage] = {}
        self.execution_order: List[str] = []

    def register_stage(self, stage: PipelineStage) -> None:
        """Register a stage with the pipeline."""
        self.stages[stage.name] = stage
        logger.debug(f"Registered stage: {stage.name}")

    def set_execution_order(self, order: List[str]) -> None:
        """
        Set the order in which stages run.

        Args:
            order: Stage names in execution order.

        Raises:
            ValueError: If a stage is unknown or runs before a dependency.
        """
        seen = set()
        for stage_name in order:
            stage = self.stages.get(stage_name)
            if stage is None:
                raise ValueError(f"Unknown stage: {stage_name}")
            missing = [dep for dep in stage.dependencies if dep not in seen]
            if missing:
                raise ValueError(
                    f"Stage {stage_name} must run after: {', '.join(missing)}"
                )
            seen.add(stage_name)
        self.execution_order = list(order)

    def run(self, source: str) -> PipelineState:
        """
        Run all stages for one source.

        Args:
            source: Remote URL of the source, for logging and reporting.

        Returns:
            Final pipeline state.
        """
        state = PipelineState(pipeline_id=uuid.uuid4().hex[:8], source=source)
        logger.info(f"Starting pipeline {state.pipeline_id} for {source}")

        for stage_name in self.execution_order:
            result = StageResult()
            state.stage_results[stage_name] = result
            started = time.monotonic()

            try:
                output, metrics = self.stages[stage_name].execute(state)
            except GitSourceError as e:
                result.status = StageStatus.FAILED
                result.error = str(e)
                result.elapsed = time.monotonic() - started
                state.failure = e
                logger.error(f"Stage {stage_name} failed: {e}")
                break

            result.status = StageStatus.COMPLETED
            result.metrics = metrics
            result.elapsed = time.monotonic() - started
            state.data[stage_name] = output
            logger.info(f"Stage {stage_name} completed in {result.elapsed:.2f}s: {metrics}")

        return state
