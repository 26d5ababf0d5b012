"""Pending batch storage for the analytics batcher."""

from .batch_store import BatchStore, InMemoryBatchStore

__all__ = ["BatchStore", "InMemoryBatchStore"]
