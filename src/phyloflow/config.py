"""Runtime configuration for workflows and pipelines."""

import logging
import os
from dataclasses import dataclass

import dotenv

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class WorkflowConfig:
    """Settings shared by the scheduler and the pipeline.

    Attributes:
        max_workers: Size of the thread pool running algorithm nodes.
        show_progress: Whether progress bars are drawn (only when INFO logging is on).
        progress_step: Number of progress increments between cancellation checks.
        log_level: Level name used by the command-line scripts.
    """

    max_workers: int = 4
    show_progress: bool = True
    progress_step: int = 1
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")
        if self.progress_step < 1:
            raise ValueError(f"progress_step must be positive, got {self.progress_step}")
        self.log_level = self.log_level.upper()

    @classmethod
    def from_env(cls, load_dotenv: bool = True) -> "WorkflowConfig":
        """Create a config from ``PHYLOFLOW_*`` environment variables.

        A ``.env`` file in the working directory is loaded first unless
        ``load_dotenv`` is False. Unset variables keep their defaults.
        """
        if load_dotenv:
            dotenv.load_dotenv()

        defaults = cls()
        config = cls(
            max_workers=int(os.getenv("PHYLOFLOW_MAX_WORKERS", defaults.max_workers)),
            show_progress=_parse_bool(os.getenv("PHYLOFLOW_SHOW_PROGRESS"), defaults.show_progress),
            progress_step=int(os.getenv("PHYLOFLOW_PROGRESS_STEP", defaults.progress_step)),
            log_level=os.getenv("PHYLOFLOW_LOG_LEVEL", defaults.log_level),
        )
        logger.debug("Loaded workflow config from environment: %s", config)
        return config


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE_VALUES
