"""CLI helpers exposed for other modules."""

from .ui import StepTracker, run_tracked, select_with_arrows

__all__ = ["StepTracker", "run_tracked", "select_with_arrows"]
