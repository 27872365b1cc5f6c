"""
Progress logging for sequential batch loops.
"""

import logging
import math

from core.models import JobContext


def progress_interval(total: int) -> int:
    """Log every ~10% of a worklist (at least every item)."""
    return max(1, math.ceil(total / 10))


def log_progress(logger: logging.Logger, job: JobContext, label: str, index: int, total: int):
    """Log ``index`` (0-based) when it falls on a progress boundary."""
    if total <= 0 or index % progress_interval(total) != 0:
        return
    percent = (index + 1) / total * 100
    logger.info(f"{job.tag} {label} {index + 1}/{total} ({percent:.2f}%)")
