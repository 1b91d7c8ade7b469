"""Input/output helpers for coursesync."""

from .checkpoint import CheckpointStore
from .config import discover_config, load_config
from .logging import StructuredLogger

__all__ = ["CheckpointStore", "StructuredLogger", "discover_config", "load_config"]
