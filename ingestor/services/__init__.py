"""Service layer for pipeline state."""

from ingestor.services.checkpoint_store import CheckpointStore
from ingestor.services.lifecycle import LifecycleManager

__all__ = [
    "CheckpointStore",
    "LifecycleManager",
]
