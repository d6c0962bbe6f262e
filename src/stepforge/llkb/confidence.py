"""
Confidence scoring for learned patterns.

Uses the Wilson score lower bound, which stays pessimistic on small
samples: five successes and no failures score about 0.57, not 1.0.
"""

from __future__ import annotations

import math

WILSON_Z = 1.96  # 95% interval
DEFAULT_CONFIDENCE = 0.5


def calculate_confidence(success_count: int, fail_count: int) -> float:
    """Wilson lower bound of the success rate, clamped to [0, 1]."""
    n = success_count + fail_count
    if n <= 0:
        return DEFAULT_CONFIDENCE

    p = success_count / n
    z2 = WILSON_Z * WILSON_Z
    numerator = p + z2 / (2 * n) - WILSON_Z * math.sqrt(p * (1 - p) / n + z2 / (4 * n * n))
    denominator = 1 + z2 / n
    return max(0.0, min(1.0, numerator / denominator))
