"""Completeness scoring for catalog candidates."""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, List, Tuple

from .models import CatalogCandidate, RankedCandidate

IMAGE_POINTS = 10
DESCRIPTION_CHAR_CAP = 2000
DESCRIPTION_CHARS_PER_POINT = 50
PARAMETER_POINTS = 2
BRAND_POINTS = 10
MODEL_POINTS = 10
NO_IMAGE_PENALTY = 20

BRAND_PATTERN = re.compile(r"marka", re.IGNORECASE)
MODEL_PATTERN = re.compile(r"model", re.IGNORECASE)


def description_length(description: Any) -> int:
    """Character count of a product description.

    Plain strings count as-is. Structured descriptions
    ({"sections": [{"items": [{"text"|"content": ...}]}]}) count their
    flattened text. Anything else counts its JSON form.
    """
    if not description:
        return 0
    if isinstance(description, str):
        return len(description)
    if isinstance(description, dict) and isinstance(description.get("sections"), list):
        parts = []
        for section in description["sections"]:
            if not isinstance(section, dict):
                continue
            for item in section.get("items") or []:
                if isinstance(item, dict):
                    parts.append(str(item.get("text") or item.get("content") or ""))
        return len("".join(parts))
    try:
        return len(json.dumps(description, ensure_ascii=False, separators=(",", ":")))
    except (TypeError, ValueError):
        return 0


def _parameter_matches(parameters: Iterable[dict], pattern: re.Pattern) -> bool:
    for param in parameters:
        if not isinstance(param, dict):
            continue
        label = param.get("name") or param.get("id") or ""
        if pattern.search(str(label)):
            return True
    return False


def score_product(candidate: CatalogCandidate) -> Tuple[float, List[str]]:
    images_count = len(candidate.images)
    desc_length = description_length(candidate.raw_detail.get("description"))
    parameters_count = len(candidate.parameters)

    score = 0.0
    reasons = []

    score += images_count * IMAGE_POINTS
    reasons.append(f"Zdjęcia: {images_count}")

    desc_score = min(desc_length, DESCRIPTION_CHAR_CAP) / DESCRIPTION_CHARS_PER_POINT
    score += desc_score
    reasons.append(f"Opis: {desc_length} znaków (+{desc_score:.1f})")

    score += parameters_count * PARAMETER_POINTS
    reasons.append(f"Parametry: {parameters_count}")

    if _parameter_matches(candidate.parameters, BRAND_PATTERN):
        score += BRAND_POINTS
        reasons.append("Zawiera markę")
    if _parameter_matches(candidate.parameters, MODEL_PATTERN):
        score += MODEL_POINTS
        reasons.append("Zawiera model")
    if images_count == 0:
        score -= NO_IMAGE_PENALTY
        reasons.append(f"Brak zdjęć (-{NO_IMAGE_PENALTY})")

    return score, reasons


def rank_products(candidates: Iterable[CatalogCandidate]) -> List[RankedCandidate]:
    """Score candidates and sort best first; equal scores keep input order."""
    ranked = []
    for candidate in candidates:
        score, reasons = score_product(candidate)
        ranked.append(RankedCandidate(candidate=candidate, score=score, reasons=reasons))
    return sorted(ranked, key=lambda item: item.score, reverse=True)


def top_candidates(ranked: List[RankedCandidate], n: int = 3) -> List[RankedCandidate]:
    return ranked[:n]
