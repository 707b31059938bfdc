"""
Concurrent storage of tracked call entries.
"""

from .call_registry import CallRegistry, RegistryStats, RegistryView

__all__ = ["CallRegistry", "RegistryStats", "RegistryView"]
