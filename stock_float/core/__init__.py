"""Core configuration for the stock float engine."""

from .config import (
    CONFIG,
    EngineConfig,
    LeadTimeConfig,
    ProjectionConfig,
    SchedulerConfig,
    StorageConfig,
)

__all__ = [
    "CONFIG",
    "EngineConfig",
    "LeadTimeConfig",
    "ProjectionConfig",
    "SchedulerConfig",
    "StorageConfig",
]
