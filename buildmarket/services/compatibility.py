"""
BuildMarket Backend: Compatibility Scorer
==========================================

What:  Scores how well a build's playstyle ("Build DNA") fits a buyer's.
How:   Per-dimension distance on two 8-element 1-10 vectors, averaged into a
       0-100 score, plus phrase explanations and a win-rate heuristic.
Who:   BuildService (list/detail/compatibility) and POST /api/compatibility.

Algorithm:
    dim_score[i] = (1 - |buyer[i] - build[i]| / 9) * 100      0..100
    score        = round(mean(dim_score))
    strengths    = dimensions with dim_score >= 75 (first 3)
    weaknesses   = dimensions with dim_score <  45 (first 2)
    win boost    = round(clamp(((score - 50) / 50) * 25
                               + (shooting - 50) * 0.3, -15, 30))

Missing or wrong-length vectors never raise: they score as a fixed neutral
result so listings without playstyle data still render.

The function is pure and O(8); it is recomputed on every request.
"""

import math
from typing import Dict, List, Optional, Sequence

from buildmarket.schemas.compatibility import CompatibilityResult, PlaystyleDimension

VECTOR_LENGTH = 8
MAX_DIFF = 9  # components are 1..10

STRENGTH_THRESHOLD = 75
WEAKNESS_THRESHOLD = 45
MAX_STRENGTHS = 3
MAX_WEAKNESSES = 2

# The coefficients are presentation behavior, not calibrated predictions
BASE_BOOST_SCALE = 25
PERF_BOOST_FACTOR = 0.3
DEFAULT_SHOOTING = 50
MIN_WIN_BOOST = -15
MAX_WIN_BOOST = 30

# (minimum score, label), evaluated top-down
LABEL_BANDS = (
    (90, "Perfect Match"),
    (75, "Great Match"),
    (60, "Good Match"),
    (45, "Moderate Match"),
)
LOWEST_LABEL = "Poor Match"

COLOR_BANDS = (
    (90, "#10B981"),
    (75, "#3B82F6"),
    (60, "#F59E0B"),
    (45, "#F97316"),
)
LOWEST_COLOR = "#EF4444"

PLAYSTYLE_KEYS = (
    "shootVsDrive",
    "soloVsSquad",
    "defenseSkill",
    "reactionTiming",
    "offensiveStyle",
    "physicalPlay",
    "pacePreference",
    "consistencyVsHighRisk",
)

DIMENSION_LABELS: Dict[str, Dict[str, str]] = {
    "shootVsDrive": {"low": "Drive style", "high": "Shooting style"},
    "soloVsSquad": {"low": "Squad play", "high": "Solo play"},
    "defenseSkill": {"low": "Offense focus", "high": "Defense focus"},
    "reactionTiming": {"low": "Casual pace", "high": "Elite timing"},
    "offensiveStyle": {"low": "Set plays", "high": "Freestyle offense"},
    "physicalPlay": {"low": "Finesse", "high": "Physical"},
    "pacePreference": {"low": "Slow & methodical", "high": "Fast & aggressive"},
    "consistencyVsHighRisk": {"low": "Consistent", "high": "High-risk/reward"},
}

DIMENSION_QUESTIONS: Dict[str, str] = {
    "shootVsDrive": "Do you prefer shooting from range or driving to the basket?",
    "soloVsSquad": "Do you play more solo (1v1, solo modes) or with a squad?",
    "defenseSkill": "How much do you focus on playing defense?",
    "reactionTiming": "How would you rate your reaction time and timing precision?",
    "offensiveStyle": "Do you run set plays or prefer freestyling on offense?",
    "physicalPlay": "Do you prefer finesse/skill moves or physical/power play?",
    "pacePreference": "Do you prefer a slow, methodical pace or fast, aggressive play?",
    "consistencyVsHighRisk": "Do you go for consistent/safe plays or high-risk/high-reward moves?",
}

PLAYSTYLE_DIMENSIONS: List[PlaystyleDimension] = [
    PlaystyleDimension(
        key=key,
        index=i,
        low=DIMENSION_LABELS[key]["low"],
        high=DIMENSION_LABELS[key]["high"],
        question=DIMENSION_QUESTIONS[key],
    )
    for i, key in enumerate(PLAYSTYLE_KEYS)
]

FALLBACK_RESULT = CompatibilityResult(
    score=70,
    label="Good Match",
    strengths=[],
    weaknesses=[],
    predictedWinBoost=5,
)


def round_half_up(value: float) -> int:
    """Round .5 toward +infinity (Python's round() is banker's rounding)."""
    return int(math.floor(value + 0.5))


def match_label(score: int) -> str:
    for minimum, label in LABEL_BANDS:
        if score >= minimum:
            return label
    return LOWEST_LABEL


def match_color(score: int) -> str:
    """Badge color for a score band, matching the client's palette."""
    for minimum, color in COLOR_BANDS:
        if score >= minimum:
            return color
    return LOWEST_COLOR


def playstyle_labels(vector: Sequence[int]) -> Optional[Dict[str, int]]:
    """Key a vector by dimension name; None unless it has exactly 8 entries."""
    if vector is None or len(vector) != VECTOR_LENGTH:
        return None
    return dict(zip(PLAYSTYLE_KEYS, vector))


def _phrase(buyer_value: int, key: str) -> str:
    labels = DIMENSION_LABELS[key]
    return labels["high"] if buyer_value >= 5 else labels["low"]


def predicted_win_boost(score: int, shooting: Optional[float]) -> int:
    base_boost = ((score - 50) / 50) * BASE_BOOST_SCALE
    shooting_value = DEFAULT_SHOOTING if shooting is None else shooting
    perf_boost = (shooting_value - DEFAULT_SHOOTING) * PERF_BOOST_FACTOR
    clamped = max(MIN_WIN_BOOST, min(MAX_WIN_BOOST, base_boost + perf_boost))
    return round_half_up(clamped)


def score_compatibility(
    buyer_vector: Optional[Sequence[int]],
    build_vector: Optional[Sequence[int]],
    shooting: Optional[float] = None,
) -> CompatibilityResult:
    """
    Compare a buyer's playstyle vector with a build's.

    Args:
        buyer_vector: 8 ratings (1-10) from onboarding, or None.
        build_vector: 8 ratings (1-10) from the listing, or None.
        shooting: the build's shooting performance (0-100); 50 when None.

    Returns:
        CompatibilityResult. A fresh copy of FALLBACK_RESULT when either vector
        is missing or not exactly 8 long; the shooting value is ignored then.
    """
    if (
        buyer_vector is None
        or build_vector is None
        or len(buyer_vector) != VECTOR_LENGTH
        or len(build_vector) != VECTOR_LENGTH
    ):
        return FALLBACK_RESULT.model_copy(deep=True)

    total = 0.0
    strengths: List[str] = []
    weaknesses: List[str] = []

    for i, key in enumerate(PLAYSTYLE_KEYS):
        diff = abs(buyer_vector[i] - build_vector[i])
        dim_score = (1 - diff / MAX_DIFF) * 100
        total += dim_score

        if dim_score >= STRENGTH_THRESHOLD:
            strengths.append(f"Fits your {_phrase(buyer_vector[i], key)}")
        elif dim_score < WEAKNESS_THRESHOLD:
            weaknesses.append(f"Conflicts with your {_phrase(buyer_vector[i], key)}")

    score = round_half_up(total / VECTOR_LENGTH)

    return CompatibilityResult(
        score=score,
        label=match_label(score),
        strengths=strengths[:MAX_STRENGTHS],
        weaknesses=weaknesses[:MAX_WEAKNESSES],
        predictedWinBoost=predicted_win_boost(score, shooting),
    )
