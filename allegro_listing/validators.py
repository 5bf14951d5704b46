"""EAN/GTIN validation rules."""

from __future__ import annotations

import re
from typing import Optional

EAN_PATTERN = re.compile(r"^\d{8}$|^\d{12}$|^\d{13}$|^\d{14}$", re.ASCII)
_DIGIT_RUN = re.compile(r"\d{8,14}", re.ASCII)

# Preferred lengths when several digit runs are valid.
EAN_LENGTH_PRIORITY = (13, 14, 12, 8)


def is_valid_ean(ean: str) -> bool:
    if not isinstance(ean, str):
        return False
    return bool(EAN_PATTERN.fullmatch(ean))


def pick_best_ean(text: str) -> Optional[str]:
    """Pick the most plausible EAN out of free text, e.g. an OCR answer."""
    candidates = [m for m in _DIGIT_RUN.findall(text or "") if is_valid_ean(m)]
    if not candidates:
        return None
    for length in EAN_LENGTH_PRIORITY:
        for candidate in candidates:
            if len(candidate) == length:
                return candidate
    return candidates[0]
