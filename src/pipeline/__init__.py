"""Portfolio data pipeline: full fetch, staleness check and partial updates."""

from .runner import main, run_mode

__all__ = ["main", "run_mode"]
