"""Focus score derivation from scorer metrics."""

import logging
import math
import random
from typing import Dict, Any, Optional

import config

logger = logging.getLogger(__name__)


def _as_number(value: Any) -> Optional[float]:
    """Coerce a metric to float, or None if it isn't numeric."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


def compute_focus_score(metrics: Dict[str, Any]) -> int:
    """
    Derive a 0-100 focus score from the scorer's metrics.

    Starts at 100, subtracts 30 when a gaze direction is reported and is not
    "center", subtracts min(30, blink_rate * 5), multiplies by confidence
    (0.5 when absent) and clamps to [0, 100] before rounding half up.

    Args:
        metrics: Dict with optional gaze_direction, blink_rate and confidence.

    Returns:
        Integer focus score in [0, 100].

    Examples:
        >>> compute_focus_score({"gaze_direction": "left", "blink_rate": 4, "confidence": 1})
        50
        >>> compute_focus_score({"confidence": 0.5})
        50
    """
    score = float(config.BASE_FOCUS_SCORE)

    gaze = metrics.get("gaze_direction")
    if gaze is not None and gaze != "center":
        score -= config.GAZE_OFF_CENTER_PENALTY

    blink_rate = _as_number(metrics.get("blink_rate"))
    if blink_rate is not None and blink_rate > 0:
        score -= min(config.MAX_BLINK_PENALTY, blink_rate * config.BLINK_PENALTY_PER_UNIT)

    confidence = _as_number(metrics.get("confidence"))
    if confidence is None:
        confidence = config.DEFAULT_CONFIDENCE
    confidence = min(1.0, max(0.0, confidence))

    score = min(100.0, max(0.0, score * confidence))
    # Halves round up
    return int(math.floor(score + 0.5))


def parse_analysis_metrics(response: Any) -> Optional[Dict[str, Any]]:
    """
    Extract the metrics object from a frame-analysis response.

    Args:
        response: Decoded JSON body, expected as {"metrics": {...}}.

    Returns:
        The metrics dict, or None if the response is malformed.
    """
    if not isinstance(response, dict):
        logger.debug(f"Analysis response is not an object: {type(response).__name__}")
        return None
    metrics = response.get("metrics")
    if not isinstance(metrics, dict):
        logger.debug("Analysis response has no metrics object")
        return None
    return metrics


def placeholder_focus_score(rng: Optional[random.Random] = None) -> int:
    """
    Placeholder score: random jitter in 80-99.

    NOT derived from any camera data. Only used for the live display when
    placeholder scoring is switched on; never recorded as a sample.
    """
    low, high = config.PLACEHOLDER_SCORE_RANGE
    return (rng or random).randint(low, high)
