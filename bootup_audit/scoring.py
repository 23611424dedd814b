"""Log-normal scoring curve shared by metric audits."""

import math
import sys
from typing import TypedDict


PASS_THRESHOLD = 0.9

# erfc^-1(2 * 0.1): standard-normal distance that puts p10 at a score of 0.9.
INVERSE_ERFC_ONE_FIFTH = 0.9061938024368232


class ControlPoints(TypedDict):
    p10: float
    median: float


def get_log_normal_score(control_points: ControlPoints, value: float) -> float:
    """
    Score a value on a log-normal curve where p10 scores 0.9 and median 0.5.

    Scores are clamped into the band their value falls in, so rounding in the
    tails never crosses a calibration point.
    """
    p10 = control_points["p10"]
    median = control_points["median"]
    if median <= 0:
        raise ValueError("median must be greater than zero")
    if p10 <= 0:
        raise ValueError("p10 must be greater than zero")
    if p10 >= median:
        raise ValueError("p10 must be less than the median")

    if value <= 0:
        return 1.0

    x_log_ratio = math.log(max(sys.float_info.min, value / median))
    p10_log_ratio = -math.log(max(sys.float_info.min, p10 / median))
    standardized_x = x_log_ratio * INVERSE_ERFC_ONE_FIFTH / p10_log_ratio
    complementary_percentile = (1 - math.erf(standardized_x)) / 2

    if value <= p10:
        return max(0.9, min(1.0, complementary_percentile))
    if value <= median:
        return max(0.5, min(0.8999999999999999, complementary_percentile))
    return max(0.0, min(0.49999999999999994, complementary_percentile))


def compute_log_normal_score(control_points: ControlPoints, value: float) -> float:
    """Score in [0, 1], nudged upward above 0.9 and floored to two decimals."""
    score = get_log_normal_score(control_points, value)
    if score > 0.9:
        score += 0.05 * (score - 0.9)
    return math.floor(score * 100) / 100
