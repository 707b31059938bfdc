"""
Command-line interface for hangwatch.
"""

from .main import main_cli

__all__ = ["main_cli"]
