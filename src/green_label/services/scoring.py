"""Score derivation, grading and score wording."""

import json
import random

from green_label.domain.products import MAX_SCORE, MIN_SCORE, Product, ScoreBreakdown

DEFAULT_BASE_SCORE = 50
# Facet jitter is drawn uniformly from the closed integer range [-band, band].
JITTER_BAND = 10

PROVENANCE_REPORTED = "reported"
PROVENANCE_ESTIMATED = "estimated"

_FACETS = (
    "packaging_score",
    "nutrition_score",
    "environmental_score",
    "sustainability_score",
)
_GRADE_THRESHOLDS = ((80, "A"), (70, "B"), (60, "C"), (50, "D"))
_ANALYSIS = {
    "A": "Excellent performance, leading sustainability practices",
    "B": "Good performance with minor improvements possible",
    "C": "Average performance, moderate improvements needed",
    "D": "Below average performance, consider improvements",
    "E": "Poor performance, significant improvements needed",
}


def derive_scores(product: Product, rng: random.Random | None = None) -> ScoreBreakdown:
    """Return the reported breakdown when embedded, else an estimate."""
    reported = _reported_scores(product.raw_data)
    if reported is not None:
        return reported
    return estimate_scores(product.green_score, rng)


def estimate_scores(
    green_score: float | None, rng: random.Random | None = None
) -> ScoreBreakdown:
    """Synthesize facet scores jittered around the overall score."""
    generator = rng or random.Random()
    base = DEFAULT_BASE_SCORE if green_score is None else _clamp(round(green_score))
    facets = {
        facet: _clamp(base + generator.randint(-JITTER_BAND, JITTER_BAND))
        for facet in _FACETS
    }
    return ScoreBreakdown(
        **facets,
        overall_score=base,
        provenance=PROVENANCE_ESTIMATED,
    )


def grade_for_score(score: float) -> str:
    """Map a 0-100 score to a letter grade A-E."""
    for threshold, grade in _GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return "E"


def score_label(score: float | None) -> str:
    """Short label for a product's green score."""
    if not score:
        return "Unknown"
    if score >= 70:
        return "Eco-Friendly"
    if score >= 40:
        return "Average"
    return "Poor"


def score_analysis(score: float) -> str:
    """One-sentence analysis of a facet score."""
    return _ANALYSIS[grade_for_score(score)]


def overall_impact(score: float) -> str:
    """Environmental impact band for an overall score."""
    if score >= 80:
        return "Low Impact"
    if score >= 60:
        return "Medium Impact"
    return "High Impact"


def format_grade(grade: str | None) -> str:
    """Upper-case a letter grade, or N/A when missing."""
    return grade.upper() if grade else "N/A"


def _reported_scores(raw_data: str | None) -> ScoreBreakdown | None:
    if not raw_data:
        return None
    try:
        parsed = json.loads(raw_data)
        detailed = parsed["detailed_scores"]
        values = {
            key: int(detailed[key]) for key in (*_FACETS, "overall_score")
        }
    except (ValueError, TypeError, KeyError, OverflowError):
        return None
    if any(not MIN_SCORE <= value <= MAX_SCORE for value in values.values()):
        return None
    return ScoreBreakdown(**values, provenance=PROVENANCE_REPORTED)


def _clamp(value: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, value))
