"""Analytics Batcher - per-key merging, size-bounded and debounced delivery of analytics events."""

from .config import get_config_manager
from .orchestrator import BatchingPipeline, create_default_pipeline

__version__ = "1.0.0"

__all__ = ["BatchingPipeline", "create_default_pipeline", "get_config_manager"]
