"""Analytics over recorded focus samples."""

from typing import Dict, Iterable, List, Any

from tracking.session import MetricSample


def format_countdown(seconds: float) -> str:
    """
    Format remaining seconds as a MM:SS countdown.

    Minutes are not wrapped into hours, so a 120 minute session shows "120:00".

    Examples:
        >>> format_countdown(1500)
        "25:00"
        >>> format_countdown(59)
        "00:59"
    """
    total = int(seconds) if seconds > 0 else 0
    mins, secs = divmod(total, 60)
    return f"{mins:02d}:{secs:02d}"


def format_duration(seconds: float) -> str:
    """
    Format duration in seconds to a human-readable string.

    Truncates to whole seconds at display time only.

    Examples:
        >>> format_duration(90)
        "1 min 30 secs"
        >>> format_duration(3725)
        "1 hr 2 mins"
        >>> format_duration(0)
        "0 sec"
    """
    total_seconds = int(seconds) if seconds >= 0 else 0

    hours, remainder = divmod(total_seconds, 3600)
    mins, secs = divmod(remainder, 60)

    parts = []
    if hours > 0:
        parts.append(f"{hours} {'hr' if hours == 1 else 'hrs'}")
    if mins > 0:
        parts.append(f"{mins} {'min' if mins == 1 else 'mins'}")
    # Seconds are dropped once hours are shown
    if secs > 0 and hours == 0:
        parts.append(f"{secs} {'sec' if secs == 1 else 'secs'}")

    return " ".join(parts) if parts else "0 sec"


def sort_samples(samples: Iterable[MetricSample]) -> List[MetricSample]:
    """
    Order samples by timestamp.

    Concurrent submissions can reach the collector out of order, so anything
    coming back from it is sorted before use. The sort is stable.
    """
    return sorted(samples, key=lambda s: s.timestamp)


def summarise_samples(samples: Iterable[MetricSample]) -> Dict[str, Any]:
    """
    Compute summary statistics for a session's samples.

    Args:
        samples: Samples in any order.

    Returns:
        Dict with count, average, minimum, maximum, first/last timestamps and
        span_seconds. Score fields are None when there are no samples.
    """
    ordered = sort_samples(samples)
    if not ordered:
        return {
            "count": 0,
            "average": None,
            "minimum": None,
            "maximum": None,
            "first_timestamp": None,
            "last_timestamp": None,
            "span_seconds": 0.0,
        }

    scores = [s.score for s in ordered]
    return {
        "count": len(ordered),
        "average": sum(scores) / len(scores),
        "minimum": min(scores),
        "maximum": max(scores),
        "first_timestamp": ordered[0].timestamp,
        "last_timestamp": ordered[-1].timestamp,
        "span_seconds": (ordered[-1].timestamp - ordered[0].timestamp) / 1000.0,
    }
