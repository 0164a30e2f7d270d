"""Core utilities for the repository scanner."""

__all__ = [
    "classifier",
    "ignore_rules",
    "orchestrator",
    "postprocess",
    "prioritizer",
    "reporter",
]
