# recallcore/memory_model.py

"""
FSRS v4 memory model.

Pure functions over scalar inputs and a weights vector. Stability is in
days, difficulty in [1, 10], retrievability in [0, 1].
"""

import math
from typing import Optional, Sequence

from .constants import (
    DECAY_FACTOR,
    EASY_BONUS_INDEX,
    HARD_PENALTY_INDEX,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    MIN_WEIGHTS_LENGTH,
)
from .exceptions import ConfigurationError, InvalidTimelineError

Weights = Sequence[float]


def clamp(value: float, low: float, high: float) -> float:
    """Clamp a value between low and high."""
    return max(low, min(high, value))


def validate_weights(weights: Weights) -> None:
    """
    Ensure the weights vector holds every mandatory parameter.

    Raises:
        ConfigurationError: If fewer than 15 weights are supplied.
    """
    if weights is None or len(weights) < MIN_WEIGHTS_LENGTH:
        count = 0 if weights is None else len(weights)
        raise ConfigurationError(
            f"Weights vector has {count} entries; "
            f"at least {MIN_WEIGHTS_LENGTH} are required."
        )


def _optional_weight(weights: Weights, index: int) -> float:
    """Optional weights fall back to 1.0 when absent or zero."""
    if index < len(weights) and weights[index]:
        return weights[index]
    return 1.0


def retrievability(stability: Optional[float], elapsed_days: float) -> float:
    """
    Probability of recall after `elapsed_days` without review.

    R(t) = (1 + t / (9 * S)) ** -1

    A topic with no established memory (stability None or <= 0) has zero
    recall probability.

    Raises:
        InvalidTimelineError: If elapsed_days is negative.
    """
    if elapsed_days < 0:
        raise InvalidTimelineError(
            f"Elapsed time must be non-negative, got {elapsed_days} days."
        )
    if stability is None or stability <= 0:
        return 0.0
    return (1 + elapsed_days / (DECAY_FACTOR * stability)) ** -1


def next_interval(
    stability: Optional[float], target_retrievability: float
) -> float:
    """
    Days until retrievability decays to the target.

    I = 9 * S * (1 / R_target - 1), the inverse of `retrievability`.
    Returns 1 for a missing or non-positive stability. Not clamped.
    """
    if stability is None or stability <= 0:
        return 1.0
    return DECAY_FACTOR * stability * (1 / target_retrievability - 1)


def initial_stability(grade: int, weights: Weights) -> float:
    """S_0 = w[grade - 1]"""
    return weights[grade - 1]


def initial_difficulty(grade: int, weights: Weights) -> float:
    """D_0 = w4 - w5 * (grade - 3), clamped to [1, 10]"""
    d0 = weights[4] - weights[5] * (grade - 3)
    return clamp(d0, MIN_DIFFICULTY, MAX_DIFFICULTY)


def update_difficulty(difficulty: float, grade: int, weights: Weights) -> float:
    """
    Shift difficulty by the grade, then revert toward the initial anchor w4.

    D_raw = D - w6 * (grade - 3)
    D' = clamp(D_raw + w7 * (w4 - D_raw), 1, 10)
    """
    anchor = weights[4]
    raw = difficulty - weights[6] * (grade - 3)
    reverted = raw + weights[7] * (anchor - raw)
    return clamp(reverted, MIN_DIFFICULTY, MAX_DIFFICULTY)


def update_stability_success(
    stability: float,
    difficulty: float,
    current_retrievability: float,
    grade: int,
    weights: Weights,
) -> float:
    """
    Stability after a successful recall (grade >= 2).

    S' = S * (1 + e^w8 * (11 - D) * S^-w9 * (e^(w10 * (1 - R)) - 1))
    """
    # Resolved for parity with the v4 parameter layout; not part of the factor.
    hard_penalty = (  # noqa: F841
        _optional_weight(weights, HARD_PENALTY_INDEX) if grade == 2 else 1.0
    )
    easy_bonus = (  # noqa: F841
        _optional_weight(weights, EASY_BONUS_INDEX) if grade == 4 else 1.0
    )

    factor = (
        math.exp(weights[8])
        * (11 - difficulty)
        * stability ** -weights[9]
        * (math.exp(weights[10] * (1 - current_retrievability)) - 1)
    )
    return stability * (1 + factor)


def update_stability_failure(
    stability: float,
    difficulty: float,
    current_retrievability: float,
    weights: Weights,
) -> float:
    """
    Stability after a lapse (grade 1). Never exceeds the pre-lapse value.

    S' = min(w11 * D^-w12 * ((S + 1)^w13 - 1) * e^(w14 * (1 - R)), S)
    """
    new_stability = (
        weights[11]
        * difficulty ** -weights[12]
        * ((stability + 1) ** weights[13] - 1)
        * math.exp(weights[14] * (1 - current_retrievability))
    )
    return min(new_stability, stability)
