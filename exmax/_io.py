# exmax/_io.py
"""Reading samples from whitespace-delimited text."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import List, Union

logger = logging.getLogger(__name__)


def parse_samples(text: str) -> List[float]:
    """Split on whitespace and keep every token that parses as a finite float."""
    samples: List[float] = []
    skipped = 0
    for token in text.split():
        try:
            value = float(token)
        except ValueError:
            skipped += 1
            continue
        if not math.isfinite(value):
            skipped += 1
            continue
        samples.append(value)

    if skipped:
        logger.debug("Skipped %d unparsable tokens", skipped)
    return samples


def load_samples(path: Union[str, Path]) -> List[float]:
    """Load samples from a text file (see parse_samples)."""
    path = Path(path)
    samples = parse_samples(path.read_text(encoding="utf-8"))
    logger.info("Loaded %d samples from %s", len(samples), path)
    return samples
