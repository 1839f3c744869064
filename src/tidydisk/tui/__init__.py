"""Textual interface for tidydisk (install with the ``tui`` extra)."""

from tidydisk.tui.app import TidyDiskApp, run_tui

__all__ = ["TidyDiskApp", "run_tui"]
