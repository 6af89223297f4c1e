"""Track rollout of battleplan goals from their GitHub tracking issues."""

__version__ = "0.1.0"
