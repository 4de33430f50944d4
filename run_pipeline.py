"""Convenience shim around the pipeline CLI (`python run_pipeline.py check`)."""

from __future__ import annotations

import sys

from src.pipeline.runner import main


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
