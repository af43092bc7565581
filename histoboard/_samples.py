"""Load, save, parse and generate numeric sample data.

File parsing and manual text entry deliberately differ: a data file is
read leniently (tokens that are not numbers are skipped), while typed-in
text is strict and stops at the first bad token so the user can fix it.
"""
from __future__ import annotations

import logging
import math
import re
from pathlib import Path
from typing import Sequence

import numpy as np

from ._errors import DataFileError, NotFound, SampleParseError

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[,\s;]+")


def _tokens(text: str) -> list[str]:
    return [t for t in _SEPARATORS.split(text) if t]


def _to_float(token: str) -> float | None:
    try:
        value = float(token)
    except ValueError:
        return None
    # nan and inf would poison the bin range
    return value if math.isfinite(value) else None


def parse_samples(text: str) -> list[float]:
    """Lenient parse used for data files; unparsable tokens are skipped."""
    if not text or not text.strip():
        return []
    values = []
    skipped = 0
    for token in _tokens(text):
        value = _to_float(token)
        if value is None:
            skipped += 1
            continue
        values.append(value)
    if skipped:
        logger.debug("Skipped %d non-numeric tokens", skipped)
    return values


def parse_text_entry(text: str) -> list[float]:
    """Strict parse used for typed-in data.

    Raises
    ------
    SampleParseError
        On the first token that is not a number (1-based position).
    """
    if not text or not text.strip():
        return []
    values = []
    for i, token in enumerate(_tokens(text), start=1):
        value = _to_float(token)
        if value is None:
            raise SampleParseError(token, i)
        values.append(value)
    return values


def generate_samples(count: int, mean: float, std: float,
                     rng: np.random.Generator) -> list[float]:
    """Draw *count* normally distributed samples from *rng*."""
    if count <= 0:
        return []
    return rng.normal(mean, std, size=count).tolist()


class SampleSource:
    """Reads and writes delimited numeric text files."""

    def load(self, path: str | Path) -> list[float]:
        path = Path(path)
        if not path.is_file():
            raise NotFound(path, "Data file")
        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise DataFileError(f"not UTF-8 text ({e.reason})", path) from e
        except OSError as e:
            raise DataFileError(f"could not read file: {e}", path) from e
        values = parse_samples(text)
        logger.info("Loaded %d samples from %s", len(values), path)
        return values

    def save(self, path: str | Path, samples: Sequence[float]) -> Path:
        """Write one value per line; ``.csv`` files get a ``Value`` header."""
        path = Path(path)
        lines = [repr(float(v)) for v in samples]
        if path.suffix.lower() == ".csv":
            lines.insert(0, "Value")
        path.write_text("\n".join(lines))
        logger.info("Saved %d samples to %s", len(samples), path)
        return path
