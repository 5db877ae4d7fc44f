# fundflow/log.py
#
# Shared service logger with elapsed time.
#
# Design decisions:
#   - Same single log() helper as the ingestion pipeline: discovery runs are
#     short-lived and read as a sequence of phases (levels), so elapsed time
#     since process start is more useful than wall-clock timestamps.
#   - Plain stdout with flush so lines appear immediately under uvicorn.
#   - Thread-safe: sys.stdout.write of a single string is atomic in CPython.
from __future__ import annotations

import sys
import time

_start = time.monotonic()


def log(message: str) -> None:
    """Write a timestamped log line to stdout."""
    elapsed = time.monotonic() - _start
    minutes, seconds = divmod(int(elapsed), 60)
    sys.stdout.write(f"[fundflow {minutes:02d}:{seconds:02d}] {message}\n")
    sys.stdout.flush()
