"""
Rolling baselines and deviation scoring.

A baseline is a Welford accumulator (mean, M2, n) so each metric costs O(1)
memory no matter how many observations it has seen.
"""

import math
from datetime import datetime

from worldwatch.analysis.types import Baseline, DeviationLevel, DeviationResult

HIGH_Z_THRESHOLD = 2.5
ELEVATED_Z_THRESHOLD = 1.5

# Below this many samples there is no spread to measure against
MIN_SAMPLES = 2

EPSILON = 1e-9


def fold(baseline: Baseline, observed: float, at: datetime | None = None) -> Baseline:
    """Return a new baseline with one more observation folded in."""
    count = baseline.sample_count + 1
    delta = observed - baseline.mean
    mean = baseline.mean + delta / count
    m2 = baseline.m2 + delta * (observed - mean)
    return baseline.model_copy(
        update={
            "mean": mean,
            "m2": m2,
            "sample_count": count,
            "last_updated": at or baseline.last_updated,
        }
    )


def merge(stored: Baseline, extra: Baseline) -> Baseline:
    """Combine two accumulators of the same metric (Chan's parallel update)."""
    if extra.sample_count == 0:
        return stored
    if stored.sample_count == 0:
        return extra.model_copy(update={"key": stored.key})

    count = stored.sample_count + extra.sample_count
    delta = extra.mean - stored.mean
    mean = stored.mean + delta * extra.sample_count / count
    m2 = (
        stored.m2
        + extra.m2
        + delta * delta * stored.sample_count * extra.sample_count / count
    )
    last_updated = max(
        (t for t in (stored.last_updated, extra.last_updated) if t is not None),
        default=None,
    )
    return stored.model_copy(
        update={
            "mean": mean,
            "m2": m2,
            "sample_count": count,
            "last_updated": last_updated,
        }
    )


def classify(z_score: float) -> DeviationLevel:
    magnitude = abs(z_score)
    if magnitude >= HIGH_Z_THRESHOLD:
        return "high"
    elif magnitude >= ELEVATED_Z_THRESHOLD:
        return "elevated"
    return "normal"


def deviation(observed: float, baseline: Baseline) -> DeviationResult:
    """
    Score an observation against a baseline.

    Never raises and never returns NaN or infinity: the spread and the mean
    are floored at EPSILON, and with fewer than MIN_SAMPLES samples the
    z-score is reported as 0 (level "normal").
    """
    if not math.isfinite(observed):
        return DeviationResult(z_score=0.0, percent_change=0.0, level="normal")

    diff = observed - baseline.mean
    percent_change = diff / max(baseline.mean, EPSILON) * 100

    if baseline.sample_count < MIN_SAMPLES:
        z_score = 0.0
    else:
        z_score = diff / max(baseline.stddev, EPSILON)

    if not math.isfinite(percent_change):
        percent_change = 0.0
    if not math.isfinite(z_score):
        z_score = 0.0

    return DeviationResult(
        z_score=z_score,
        percent_change=percent_change,
        level=classify(z_score),
    )
