"""Pipeline orchestration module for the analytics batcher."""

from .pipeline_orchestrator import BatchingPipeline, create_default_pipeline

__all__ = ["BatchingPipeline", "create_default_pipeline"]
